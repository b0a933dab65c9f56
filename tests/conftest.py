"""Shared test fixtures for the skimmer test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiosqlite
import pytest
from bs4 import BeautifulSoup

from skimmer.cache import ContentCache
from skimmer.highlight import SyntaxHighlighter
from skimmer.models.style import Style
from skimmer.tags import FormatConfig

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

    from bs4 import Tag


BOLD = Style(bold=True)
ITALIC = Style(italic=True)


@pytest.fixture()
async def cache() -> AsyncGenerator[ContentCache, None]:
    """ContentCache over an in-memory SQLite database."""
    async with aiosqlite.connect(":memory:") as db:
        content_cache = ContentCache(db)
        await content_cache.init_db()
        yield content_cache


@pytest.fixture()
def format_config() -> FormatConfig:
    """A small format config: head ignored, h1/pre/p blocks, li indented."""
    return FormatConfig.build(
        ignored=["head"],
        block=["h1", "pre", "p"],
        indent=["li"],
        styles={"strong": BOLD, "b": BOLD, "i": ITALIC, "h1": BOLD},
    )


@pytest.fixture()
def highlighter() -> SyntaxHighlighter:
    return SyntaxHighlighter(default_language="", theme="monokai")


@pytest.fixture()
def body() -> Callable[[str], Tag]:
    """Parse an HTML fragment and return its <body> element."""

    def _body(html: str) -> Tag:
        soup = BeautifulSoup(html, "lxml")
        assert soup.body is not None
        return soup.body

    return _body
