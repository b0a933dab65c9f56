"""Command-line entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create the AppContext inside an async context manager
- Extract each positional target and print its text
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog

from skimmer import __version__
from skimmer.cache import open_cache
from skimmer.config import Settings
from skimmer.errors import CacheError
from skimmer.extractor import PageExtractor
from skimmer.fetcher import Fetcher, build_http_client
from skimmer.sites import SiteResolver
from skimmer.sources import source_for
from skimmer.state import AppContext

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Sequence

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        # Logs go to stderr; stdout carries the extracted page text
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Application context
# ---------------------------------------------------------------------------


@asynccontextmanager
async def app_context(settings: Settings) -> AsyncGenerator[AppContext, None]:
    """Create and tear down all shared resources for one run."""
    cache = await open_cache(settings.cache.db_path)
    http_client = build_http_client(settings.fetcher)

    ctx = AppContext(
        settings=settings,
        resolver=SiteResolver.from_settings(settings),
        cache=cache,
        fetcher=Fetcher(http_client, settings.fetcher),
    )
    log.info("app_started", version=__version__, db_path=settings.cache.db_path)

    try:
        yield ctx
    finally:
        await http_client.aclose()
        await cache.close()
        log.info("app_stopping")


async def run(targets: Sequence[str], settings: Settings) -> int:
    """Print the text of every target. Returns the process exit code."""
    async with app_context(settings) as ctx:
        extractor = PageExtractor(ctx)
        sources = [source_for(target) for target in targets]
        # Later targets load while earlier ones are printed.
        for source in sources[1:]:
            extractor.preload(source)

        exit_code = 0
        for source in sources:
            page = await extractor.extract(source)
            _, text = await extractor.get_text(source)
            print(page.title)
            print(text)
            if page.failed:
                exit_code = 1
        return exit_code


def main() -> None:
    settings = Settings()
    setup_logging(settings)

    targets = sys.argv[1:]
    if not targets:
        print("usage: skimmer <url-or-file> [<url-or-file> ...]", file=sys.stderr)
        sys.exit(2)

    try:
        sys.exit(asyncio.run(run(targets, settings)))
    except CacheError as exc:
        log.error("cache_unavailable", message=exc.message)
        sys.exit(1)


if __name__ == "__main__":
    main()
