from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from skimmer.models.style import Style


@dataclass
class StyledSpan:
    content: str
    style: Style | None = None

    def under(self, base: Style | None) -> StyledSpan:
        """Return this span with ``base`` applied beneath its own style."""
        if base is None:
            return self
        return StyledSpan(self.content, base.patch(self.style))


@dataclass
class StyledLine:
    spans: list[StyledSpan] = field(default_factory=list)

    @classmethod
    def of(cls, content: str, style: Style | None = None) -> StyledLine:
        return cls([StyledSpan(content.replace("\n", ""), style)])

    @property
    def content(self) -> str:
        return "".join(span.content for span in self.spans)

    def is_empty(self) -> bool:
        return not self.content.strip()

    def under(self, base: Style | None) -> StyledLine:
        if base is None:
            return self
        return StyledLine([span.under(base) for span in self.spans])

    def flatten(self) -> StyledLine:
        """Drop empty spans and join neighbours that share a style."""
        merged: list[StyledSpan] = []
        for span in self.spans:
            if not span.content:
                continue
            if merged and merged[-1].style == span.style:
                merged[-1] = StyledSpan(merged[-1].content + span.content, span.style)
            else:
                merged.append(StyledSpan(span.content, span.style))
        return StyledLine(merged)


@dataclass
class Page:
    """Result of one extraction: the document title and its formatted lines."""

    title: str
    lines: list[StyledLine] = field(default_factory=list)
    failed: bool = False
