"""Application context container.

AppContext is created once at startup (inside ``app.app_context``) and
passed explicitly to the extractor and page sources.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from skimmer.config import Settings
    from skimmer.protocols import CacheProtocol, FetcherProtocol
    from skimmer.sites import SiteResolver


@dataclass
class AppContext:
    """Holds all shared runtime state."""

    settings: Settings
    resolver: SiteResolver
    cache: CacheProtocol
    fetcher: FetcherProtocol
