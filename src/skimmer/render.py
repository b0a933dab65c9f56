"""Conversion of styled lines into plain text, ANSI text and rich ``Text``."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.color import ColorSystem
from rich.style import Style as RichStyle
from rich.text import Text

if TYPE_CHECKING:
    from collections.abc import Iterable

    from skimmer.models.page import StyledLine
    from skimmer.models.style import Style


def rich_style(style: Style | None) -> RichStyle:
    if style is None:
        return RichStyle.null()
    return RichStyle(
        color=style.fg.hex if style.fg else None,
        bgcolor=style.bg.hex if style.bg else None,
        bold=style.bold,
        italic=style.italic,
        underline=style.underlined,
        strike=style.crossed_out,
        dim=style.dim,
    )


def to_plain(lines: Iterable[StyledLine]) -> str:
    return "\n".join(line.content for line in lines)


def to_ansi(lines: Iterable[StyledLine]) -> str:
    """Render lines with 24-bit ANSI escapes. Unstyled spans are emitted as-is."""
    rendered: list[str] = []
    for line in lines:
        rendered.append(
            "".join(
                rich_style(span.style).render(span.content, color_system=ColorSystem.TRUECOLOR)
                for span in line.spans
            )
        )
    return "\n".join(rendered)


def to_rich_text(line: StyledLine) -> Text:
    text = Text(no_wrap=False)
    for span in line.spans:
        text.append(span.content, style=rich_style(span.style))
    return text
