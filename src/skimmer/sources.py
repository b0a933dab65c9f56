"""Page sources: where the HTML for a page comes from.

A source is either a network ``Link`` (read through the content cache) or
a ``LocalFile``. Both expose the same ``fetch``/``purge`` pair so the
extractor never branches on the kind of source.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from skimmer.errors import ErrorCode, FetchError
from skimmer.fetcher import ensure_scheme

if TYPE_CHECKING:
    from skimmer.models.site import SiteConfig
    from skimmer.state import AppContext

log = structlog.get_logger()


@dataclass(frozen=True)
class Link:
    url: str

    @property
    def key(self) -> str:
        return self.url

    @property
    def site_url(self) -> str:
        return ensure_scheme(self.url)

    async def fetch(self, ctx: AppContext, site: SiteConfig) -> str:
        cached = await ctx.cache.get(self.url, site.cache)
        if cached is not None:
            return cached
        html = await ctx.fetcher.fetch(self.url, site.headers)
        await ctx.cache.put(self.url, html, site.cache)
        return html

    async def purge(self, ctx: AppContext, site: SiteConfig) -> None:
        await ctx.cache.remove(self.url, site.cache)


@dataclass(frozen=True)
class LocalFile:
    path: Path
    # Page the file was saved from; selects the site profile when set.
    url: str = ""

    @property
    def key(self) -> str:
        return str(self.path)

    @property
    def site_url(self) -> str | None:
        return ensure_scheme(self.url) if self.url else None

    async def fetch(self, ctx: AppContext, site: SiteConfig) -> str:
        try:
            return await asyncio.to_thread(self.path.read_text, encoding="utf-8", errors="replace")
        except OSError as exc:
            log.warning("file_read_error", path=str(self.path), reason=str(exc))
            raise FetchError(
                code=ErrorCode.FILE_READ_FAILED,
                message=f"Could not read {self.path}: {exc.strerror or exc}",
            ) from exc

    async def purge(self, ctx: AppContext, site: SiteConfig) -> None:
        return None


PageSource = Link | LocalFile


def source_for(target: str) -> PageSource:
    """Treat an existing path as a local file and anything else as a URL."""
    path = Path(target).expanduser()
    if "://" not in target and path.is_file():
        return LocalFile(path)
    return Link(target)
