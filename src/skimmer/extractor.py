"""Page extraction: fetch, parse, select, format.

``PageExtractor`` is the error boundary of the pipeline. Every expected
failure (bad selector, empty result, fetch or file errors) is turned into
a displayable ``Page`` here instead of propagating to the caller.

Each source key is computed at most once per extractor. The first call
(foreground or preload) creates the task; every later call awaits the same
task, so concurrent preload and foreground reads share one fetch.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog
from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError

from skimmer.errors import NoContentError, SelectorError, SkimmerError
from skimmer.formatter import DomFormatter, collapse_duplicates
from skimmer.highlight import SyntaxHighlighter
from skimmer.models.page import Page, StyledLine
from skimmer.render import to_ansi, to_plain

if TYPE_CHECKING:
    from skimmer.models.site import SiteConfig
    from skimmer.sources import PageSource
    from skimmer.state import AppContext

log = structlog.get_logger()

UNKNOWN_TITLE = "Unknown Title"
FAILED_TITLE = "Failed to retrieve"


def sanitize(html: str) -> str:
    return html.replace("\t", "    ").replace("\r", "").replace("\ufeff", "")


def failed_page(message: str) -> Page:
    return Page(title=FAILED_TITLE, lines=[StyledLine.of(message)], failed=True)


def extract_lines(
    html: str, selector: str, site: SiteConfig, nth_element: list[int] | None = None
) -> Page:
    """Parse ``html`` and format every element matching ``selector``.

    ``nth_element`` keeps only the given 1-based positions among the
    matches that produced any lines. Raises SelectorError or NoContentError.
    """
    soup = BeautifulSoup(sanitize(html), "lxml")
    title = soup.title.get_text().strip() if soup.title is not None else ""
    if not title:
        log.debug("title_missing")
        title = UNKNOWN_TITLE

    try:
        elements = soup.select(selector)
    except (SelectorSyntaxError, ValueError) as exc:
        raise SelectorError(selector) from exc

    formatter = DomFormatter(
        site.format,
        SyntaxHighlighter(site.syntax.default_language, site.syntax.theme),
    )
    blocks = [lines for lines in (formatter.format(element) for element in elements) if lines]
    if nth_element:
        blocks = [block for index, block in enumerate(blocks, start=1) if index in nth_element]

    lines = collapse_duplicates(line for block in blocks for line in block)
    if not any(not line.is_empty() for line in lines):
        raise NoContentError()
    return Page(title=title, lines=lines)


class PageExtractor:
    def __init__(self, ctx: AppContext) -> None:
        self._ctx = ctx
        self._pages: dict[str, asyncio.Task[Page]] = {}

    def _task(self, source: PageSource) -> asyncio.Task[Page]:
        task = self._pages.get(source.key)
        if task is None:
            task = asyncio.create_task(self._compute(source), name=f"extract:{source.key}")
            self._pages[source.key] = task
        return task

    async def extract(self, source: PageSource) -> Page:
        # Shielded so a cancelled caller never cancels the shared computation.
        return await asyncio.shield(self._task(source))

    def preload(self, source: PageSource) -> None:
        """Start computing ``source`` in the background. The task is never cancelled."""
        if source.key not in self._pages:
            log.debug("preload_started", key=source.key)
        self._task(source)

    async def get_text(self, source: PageSource) -> tuple[str, str]:
        """Return ``(title, text)`` with ANSI styling when the colour mode is ``always``."""
        page = await self.extract(source)
        if self._ctx.settings.extraction.color_mode == "always":
            return page.title, to_ansi(page.lines)
        return page.title, to_plain(page.lines)

    def _site_for(self, source: PageSource) -> tuple[SiteConfig, str]:
        resolver = self._ctx.resolver
        site_url = source.site_url
        if site_url is None:
            return resolver.base, resolver.selector_for("")
        return resolver.resolve(site_url), resolver.selector_for(site_url)

    async def _compute(self, source: PageSource) -> Page:
        site, selector = self._site_for(source)
        nth_element = self._ctx.settings.extraction.nth_element
        try:
            html = await source.fetch(self._ctx, site)
            page = await asyncio.to_thread(extract_lines, html, selector, site, nth_element)
        except SkimmerError as exc:
            log.info("extraction_failed", key=source.key, code=exc.code, message=exc.message)
            await source.purge(self._ctx, site)
            return failed_page(exc.message)
        except Exception as exc:
            log.error("extraction_error", key=source.key, exc_info=True)
            await source.purge(self._ctx, site)
            return failed_page(f"Error: {exc}")

        log.debug("extraction_complete", key=source.key, lines=len(page.lines))
        return page
