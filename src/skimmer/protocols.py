"""Protocol interfaces for swappable components.

The extractor and AppContext reference these protocols, not the concrete
implementations, so tests can substitute lightweight in-memory versions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping

    from skimmer.models.site import CacheConfig


class CacheProtocol(Protocol):
    """Interface for the page cache backend."""

    async def get(self, url: str, config: CacheConfig) -> str | None: ...

    async def put(self, url: str, html: str, config: CacheConfig) -> None: ...

    async def remove(self, url: str, config: CacheConfig) -> None: ...

    async def clear(self) -> None: ...


class FetcherProtocol(Protocol):
    """Interface for the HTTP page fetcher."""

    async def fetch(self, url: str, headers: Mapping[str, str] | None = None) -> str: ...
