"""DOM to styled-text transformation.

The formatter walks a BeautifulSoup subtree and produces styled lines.
Inline content is spliced onto the current line; block elements are kept
as whole lines surrounded by one blank separator line.

Two kinds of "empty" line are used while walking the tree:

- ``StyledLine()`` (no spans) is a block separator. Nothing is ever spliced
  onto it, so it survives as a blank line.
- ``StyledLine([StyledSpan("")])`` carries an empty span. Text spliced onto
  it joins without a space. ``<br>`` produces two of these so it ends the
  current line without leaving a blank one behind.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from bs4 import NavigableString, Tag
from bs4.element import PreformattedString

from skimmer.highlight import LANGUAGE_NOT_FOUND, SyntaxHighlighter
from skimmer.models.page import StyledLine, StyledSpan

if TYPE_CHECKING:
    from collections.abc import Iterable

    from skimmer.models.style import Style
    from skimmer.tags import FormatConfig

log = structlog.get_logger()

MAX_DEPTH = 256
INDENT = "  "
BULLET = "• "
IMAGE_PLACEHOLDER = "IMAGE"

_NO_SPACE_BEFORE = ".:;,<[{()}]>\"\\`'/"
_NO_SPACE_AFTER = "<[{()}]>`'\"\\/"
_LANGUAGE_PREFIXES = ("language-", "lang-")


# ---------------------------------------------------------------------------
# Element helpers
# ---------------------------------------------------------------------------


def is_hidden(element: Tag) -> bool:
    if element.has_attr("hidden"):
        return True
    if str(element.get("aria-hidden", "")).lower() == "true":
        return True
    style = str(element.get("style", "")).lower().replace(" ", "")
    return "display:none" in style or "visibility:hidden" in style


def code_language(element: Tag) -> str:
    classes = element.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    for name in classes:
        for prefix in _LANGUAGE_PREFIXES:
            if name.startswith(prefix):
                return name[len(prefix) :]
    return LANGUAGE_NOT_FOUND


def list_marker(element: Tag) -> str:
    value = element.get("value")
    if value is not None:
        return f"{value}. "
    parent = element.parent
    if not isinstance(parent, Tag) or parent.name != "ol":
        return BULLET
    start = str(parent.get("start", ""))
    offset = int(start) if start.isdigit() else 1
    siblings = [child for child in parent.children if isinstance(child, Tag)]
    for index, sibling in enumerate(siblings):
        if sibling is element:
            return f"{index + offset}. "
    return BULLET


def needs_space(left: str, right: str) -> bool:
    """Whether two spliced fragments need a separating space."""
    if not left or not right:
        return False
    if left.endswith(" ") or right.startswith(" "):
        return False
    return right[0] not in _NO_SPACE_BEFORE and left[-1] not in _NO_SPACE_AFTER


def merge_lines(lines: list[StyledLine], new_lines: list[StyledLine]) -> None:
    """Splice the first of ``new_lines`` onto the last of ``lines``, append the rest."""
    if lines and new_lines and lines[-1].spans and new_lines[0].spans:
        previous = lines[-1]
        first, *new_lines = new_lines
        if needs_space(previous.spans[-1].content, first.spans[0].content):
            previous.spans.append(StyledSpan(" "))
        previous.spans.extend(first.spans)
    lines.extend(new_lines)


def _styled(lines: list[StyledLine], style: Style | None) -> list[StyledLine]:
    if style is None:
        return lines
    return [line.under(style) for line in lines]


def collapse_duplicates(lines: Iterable[StyledLine]) -> list[StyledLine]:
    """Drop every line equal to the one before it."""
    result: list[StyledLine] = []
    for line in lines:
        if result and result[-1] == line:
            continue
        result.append(line)
    return result


def _normalise(line: StyledLine) -> StyledLine:
    return StyledLine() if line.is_empty() else line.flatten()


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------


class DomFormatter:
    """Formats DOM subtrees according to a site's FormatConfig."""

    def __init__(self, config: FormatConfig, highlighter: SyntaxHighlighter | None = None) -> None:
        self.config = config
        self.highlighter = highlighter or SyntaxHighlighter()

    def format(self, element: Tag) -> list[StyledLine]:
        lines = self._element_lines(element, element.name == "pre", 0)
        return collapse_duplicates(_normalise(line) for line in lines)

    def _element_lines(self, element: Tag, pre: bool, depth: int) -> list[StyledLine]:
        if depth > MAX_DEPTH:
            log.warning("formatter_depth_exceeded", tag=element.name, max_depth=MAX_DEPTH)
            return []
        if is_hidden(element) or self.config.ignored.matches(element):
            return []

        name = element.name
        if name == "br":
            return [StyledLine([StyledSpan("")]), StyledLine([StyledSpan("")])]

        style = self.config.styles.style_for(element)
        if name == "code":
            highlighted = self.highlighter.highlight(element.get_text(), code_language(element))
            return _styled(highlighted, style)

        if name == "img":
            lines = [StyledLine.of(IMAGE_PLACEHOLDER, style)]
        else:
            lines = self._child_lines(element, pre or name == "pre", style, depth)

        if not lines:
            return []

        if name == "li":
            lines = [line for line in lines if line.spans]
            if lines:
                lines[0].spans.insert(0, StyledSpan(list_marker(element), style))

        if self.config.block.matches(element):
            lines = [StyledLine(), *_styled(lines, style), StyledLine()]

        if self.config.indent.matches(element):
            for line in lines:
                if line.spans:
                    first = line.spans[0]
                    line.spans[0] = StyledSpan(INDENT + first.content, first.style)

        return lines

    def _child_lines(
        self, element: Tag, pre: bool, style: Style | None, depth: int
    ) -> list[StyledLine]:
        lines: list[StyledLine] = []
        for child in element.children:
            if isinstance(child, Tag):
                child_lines = _styled(self._element_lines(child, pre, depth + 1), style)
                if not child_lines:
                    continue
                if self.config.block.matches(child):
                    lines.extend(child_lines)
                else:
                    merge_lines(lines, child_lines)
            elif isinstance(child, NavigableString) and not isinstance(child, PreformattedString):
                text = str(child)
                if pre:
                    merge_lines(lines, [StyledLine.of(part, style) for part in text.split("\n")])
                elif text.strip():
                    merge_lines(lines, [StyledLine.of(text.replace("\n", " "), style)])
        return lines
