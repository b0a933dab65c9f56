"""Simple selector tables used by the formatter.

Selectors take the shape ``TAG#ID.CLASS.CLASS``, where every part is
optional. An empty tag is a wildcard that applies to every element. A
selector with neither id nor class matches its tag unconditionally.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from bs4 import Tag

    from skimmer.models.style import Style

log = structlog.get_logger()

WILDCARD = ""


def parse_selector(selector: str) -> tuple[str, str | None, list[str]]:
    """Split a selector into ``(tag, id, classes)``."""
    head, *classes = selector.strip().split(".")
    tag, _, element_id = head.partition("#")
    if "#" in element_id:
        log.error("selector_invalid", selector=selector, expected="TAG#ID.CLASS")
    return tag.lower(), element_id or None, [cls for cls in classes if cls]


def element_classes(element: Tag) -> list[str]:
    value = element.get("class")
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    return list(value)


def element_id(element: Tag) -> str | None:
    value = element.get("id")
    if isinstance(value, list):
        return " ".join(value)
    return value


@dataclass
class TagPredicate:
    unconditional: bool = False
    classes: set[str] = field(default_factory=set)
    ids: set[str] = field(default_factory=set)

    def matches(self, classes: list[str], element_id: str | None) -> bool:
        return (
            self.unconditional
            or any(cls in self.classes for cls in classes)
            or (element_id is not None and element_id in self.ids)
        )


class TagPredicateTable:
    """Answers "does this element match any of my selectors?"."""

    def __init__(self, selectors: Iterable[str] = ()) -> None:
        self._entries: dict[str, TagPredicate] = {}
        for selector in selectors:
            self.add(selector)

    def add(self, selector: str) -> None:
        tag, selector_id, classes = parse_selector(selector)
        entry = self._entries.setdefault(tag, TagPredicate())
        if not classes and selector_id is None:
            entry.unconditional = True
        entry.classes.update(classes)
        if selector_id is not None:
            entry.ids.add(selector_id)

    def matches(self, element: Tag) -> bool:
        classes = element_classes(element)
        identifier = element_id(element)
        for key in (element.name, WILDCARD):
            entry = self._entries.get(key)
            if entry is not None and entry.matches(classes, identifier):
                return True
        return False


@dataclass
class _StyleEntry:
    style: Style | None = None
    classes: dict[str, Style] = field(default_factory=dict)
    ids: dict[str, Style] = field(default_factory=dict)


class TagStyleTable:
    """Maps selectors to styles and resolves the merged style of an element.

    Wildcard entries are consulted before the element's own tag. Within
    the result, unconditional styles are applied first, then class styles,
    then id styles, each patching over the previous.
    """

    def __init__(self, styles: Mapping[str, Style] | None = None) -> None:
        self._entries: dict[str, _StyleEntry] = {}
        for selector, style in (styles or {}).items():
            self.add(selector, style)

    def add(self, selector: str, style: Style) -> None:
        tag, selector_id, classes = parse_selector(selector)
        entry = self._entries.setdefault(tag, _StyleEntry())
        if not classes and selector_id is None:
            entry.style = style
        for cls in classes:
            entry.classes[cls] = style
        if selector_id is not None:
            entry.ids[selector_id] = style

    def style_for(self, element: Tag) -> Style | None:
        classes = element_classes(element)
        identifier = element_id(element)
        head: list[Style] = []
        by_class: list[Style] = []
        by_id: list[Style] = []
        for key in (WILDCARD, element.name):
            entry = self._entries.get(key)
            if entry is None:
                continue
            if entry.style is not None:
                head.append(entry.style)
            by_class.extend(entry.classes[cls] for cls in classes if cls in entry.classes)
            if identifier is not None and identifier in entry.ids:
                by_id.append(entry.ids[identifier])

        layered = head + by_class + by_id
        if not layered:
            return None
        merged = layered[0]
        for style in layered[1:]:
            merged = merged.patch(style)
        return merged


@dataclass
class FormatConfig:
    ignored: TagPredicateTable = field(default_factory=TagPredicateTable)
    block: TagPredicateTable = field(default_factory=TagPredicateTable)
    indent: TagPredicateTable = field(default_factory=TagPredicateTable)
    styles: TagStyleTable = field(default_factory=TagStyleTable)

    @classmethod
    def build(
        cls,
        *,
        ignored: Iterable[str] = (),
        block: Iterable[str] = (),
        indent: Iterable[str] = (),
        styles: Mapping[str, Style] | None = None,
    ) -> FormatConfig:
        return cls(
            ignored=TagPredicateTable(ignored),
            block=TagPredicateTable(block),
            indent=TagPredicateTable(indent),
            styles=TagStyleTable(styles),
        )
