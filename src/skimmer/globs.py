"""URL glob matching with longest-pattern specificity.

Supports ``*`` and ``?`` (both may cross ``/``), ``[...]`` character
classes and ``{a,b}`` alternation. Patterns that cannot be compiled are
logged and skipped so one bad entry never disables the rest.
"""

from __future__ import annotations

import fnmatch
import re
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterable

log = structlog.get_logger()


def _expand_braces(pattern: str) -> list[str]:
    """Expand the first ``{a,b}`` group recursively. Raises ValueError if unbalanced."""
    start = pattern.find("{")
    if start == -1:
        if "}" in pattern:
            raise ValueError("unopened alternate group")
        return [pattern]

    depth = 0
    for index in range(start, len(pattern)):
        char = pattern[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                end = index
                break
    else:
        raise ValueError("unclosed alternate group")

    head, body, tail = pattern[:start], pattern[start + 1 : end], pattern[end + 1 :]
    alternatives = _split_top_level(body)
    expanded: list[str] = []
    for alternative in alternatives:
        expanded.extend(_expand_braces(head + alternative + tail))
    return expanded


def _split_top_level(body: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current = ""
    for char in body:
        if char == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        current += char
    parts.append(current)
    return parts


def compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile a glob into a full-match regex. Raises ValueError if invalid."""
    alternatives = _expand_braces(pattern)
    translated: list[str] = []
    for alternative in alternatives:
        # fnmatch treats an unclosed bracket as a literal; reject it instead.
        if alternative.count("[") > alternative.count("]"):
            raise ValueError("unclosed character class")
        translated.append(fnmatch.translate(alternative))
    try:
        return re.compile("|".join(f"(?:{regex})" for regex in translated))
    except re.error as exc:
        raise ValueError(str(exc)) from exc


class GlobMatcher:
    """A set of globs. ``best_match`` returns the longest matching pattern."""

    def __init__(self, patterns: Iterable[str]) -> None:
        self._compiled: list[tuple[str, re.Pattern[str]]] = []
        for pattern in patterns:
            try:
                self._compiled.append((pattern, compile_glob(pattern)))
            except ValueError as exc:
                log.error("glob_invalid", pattern=pattern, reason=str(exc))

    @property
    def patterns(self) -> list[str]:
        return [pattern for pattern, _ in self._compiled]

    def matches(self, url: str) -> list[str]:
        return [pattern for pattern, regex in self._compiled if regex.match(url)]

    def best_match(self, url: str) -> str | None:
        candidates = self.matches(url)
        if not candidates:
            return None
        return max(candidates, key=len)
