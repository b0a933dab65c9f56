"""Syntax highlighting for ``<code>`` blocks, built on Pygments."""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

import structlog
from pygments.lexers import get_lexer_by_name
from pygments.lexers.special import TextLexer
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from skimmer.models.page import StyledLine, StyledSpan
from skimmer.models.style import Color, Style, parse_color

if TYPE_CHECKING:
    from pygments.lexer import Lexer
    from pygments.style import StyleMeta
    from pygments.token import _TokenType

log = structlog.get_logger()

FALLBACK_THEME = "default"
# Hint used by the formatter when a <code> element names no language.
LANGUAGE_NOT_FOUND = "not-found"


@lru_cache(maxsize=64)
def _lexer(name: str) -> Lexer | None:
    if not name:
        return None
    try:
        return get_lexer_by_name(name, stripnl=False, ensurenl=False)
    except ClassNotFound:
        return None


@lru_cache(maxsize=8)
def _theme(name: str) -> StyleMeta:
    try:
        return get_style_by_name(name or FALLBACK_THEME)
    except ClassNotFound:
        log.warning("syntax_theme_unknown", theme=name, fallback=FALLBACK_THEME)
        return get_style_by_name(FALLBACK_THEME)


def _token_style(theme: StyleMeta, token_type: _TokenType) -> Style:
    token_def = theme.style_for_token(token_type)
    # Pygments expands colours to six hex digits, except ansi* names.
    rgb = parse_color(f"#{token_def['color']}") if token_def.get("color") else None
    return Style(
        fg=Color.rgb(*rgb) if rgb else None,
        bold=True if token_def.get("bold") else None,
        italic=True if token_def.get("italic") else None,
        underlined=True if token_def.get("underline") else None,
    )


class SyntaxHighlighter:
    """Turns source text into styled lines.

    The lexer is chosen from the language hint, then the configured default
    language, then plain text. Unknown themes fall back to Pygments'
    ``default`` theme.
    """

    def __init__(self, default_language: str = "", theme: str = "") -> None:
        self.default_language = default_language
        self._theme = _theme(theme)
        self._styles: dict[_TokenType, Style] = {}

    def _lexer_for(self, language: str) -> Lexer:
        lexer = _lexer(language.lower())
        if lexer is None and self.default_language:
            lexer = _lexer(self.default_language.lower())
        if lexer is None:
            lexer = TextLexer(stripnl=False, ensurenl=False)
        return lexer

    def _style_for(self, token_type: _TokenType) -> Style:
        style = self._styles.get(token_type)
        if style is None:
            style = _token_style(self._theme, token_type)
            self._styles[token_type] = style
        return style

    def highlight(self, code: str, language: str = LANGUAGE_NOT_FOUND) -> list[StyledLine]:
        if not code:
            return []

        lexer = self._lexer_for(language)
        lines: list[StyledLine] = []
        current = StyledLine()
        for token_type, value in lexer.get_tokens(code):
            style = self._style_for(token_type)
            first, *rest = value.split("\n")
            if first:
                current.spans.append(StyledSpan(first, style))
            for part in rest:
                lines.append(current)
                current = StyledLine()
                if part:
                    current.spans.append(StyledSpan(part, style))
        # A trailing newline closes the last line without opening a new one.
        if current.spans:
            lines.append(current)
        return lines
