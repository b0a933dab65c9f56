"""Integration test fixtures.

Provides a factory for fully wired AppContexts with in-memory SQLite and a
real httpx client (mocked per test with respx). Site fragments are read
from each test's tmp_path.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import aiosqlite
import httpx
import pytest

from skimmer.cache import ContentCache
from skimmer.config import Settings
from skimmer.fetcher import Fetcher
from skimmer.sites import SiteResolver
from skimmer.state import AppContext

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable
    from pathlib import Path


@pytest.fixture()
async def content_cache() -> AsyncGenerator[ContentCache, None]:
    async with aiosqlite.connect(":memory:") as db:
        cache = ContentCache(db)
        await cache.init_db()
        yield cache


@pytest.fixture()
async def http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture()
def make_context(
    content_cache: ContentCache, http_client: httpx.AsyncClient, tmp_path: Path
) -> Callable[..., AppContext]:
    """Build an AppContext from Settings overrides (site_dir defaults to tmp_path)."""

    def _make(**overrides: Any) -> AppContext:
        sites = dict(overrides.pop("sites", {}))
        sites.setdefault("site_dir", str(tmp_path))
        settings = Settings(sites=sites, **overrides)
        return AppContext(
            settings=settings,
            resolver=SiteResolver.from_settings(settings),
            cache=content_cache,
            fetcher=Fetcher(http_client, settings.fetcher),
        )

    return _make
