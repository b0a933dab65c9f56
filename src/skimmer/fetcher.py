"""HTTP page fetcher.

All network I/O goes through a single Fetcher instance. The Fetcher
receives an httpx.AsyncClient via constructor injection; the application
context owns the client lifecycle. Redirects are followed by hand so the
per-site headers are sent on every hop and the hop count stays bounded.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urljoin

import httpx
import structlog

from skimmer.errors import ErrorCode, FetchError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from skimmer.config import FetcherSettings

log = structlog.get_logger()


def build_http_client(settings: FetcherSettings) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        follow_redirects=False,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": settings.user_agent},
        limits=httpx.Limits(
            max_connections=10,
            max_keepalive_connections=5,
        ),
    )


def ensure_scheme(url: str) -> str:
    """Prefix ``https://`` when the URL has no scheme."""
    return url if "://" in url else f"https://{url}"


class Fetcher:
    """HTTP page fetcher with bounded manual redirect handling."""

    def __init__(self, client: httpx.AsyncClient, settings: FetcherSettings) -> None:
        self._client = client
        self._max_redirects = settings.max_redirects

    async def fetch(self, url: str, headers: Mapping[str, str] | None = None) -> str:
        """Fetch a URL and return the response body.

        Raises FetchError on network errors, non-2xx responses and redirect
        chains longer than the configured limit.
        """
        current_url = ensure_scheme(url)
        request_headers = dict(headers or {})

        try:
            for hop in range(self._max_redirects + 1):
                response = await self._client.get(current_url, headers=request_headers)

                if response.is_redirect and "location" in response.headers:
                    if hop == self._max_redirects:
                        raise FetchError(
                            code=ErrorCode.PAGE_FETCH_FAILED,
                            message=f"Too many redirects fetching {url}",
                        )
                    current_url = urljoin(current_url, response.headers["location"])
                    log.debug("fetch_redirect", url=url, location=current_url)
                    continue

                if not response.is_success:
                    if response.status_code == 404:
                        raise FetchError(
                            code=ErrorCode.PAGE_NOT_FOUND,
                            message=f"HTTP 404 fetching {url}",
                        )
                    raise FetchError(
                        code=ErrorCode.PAGE_FETCH_FAILED,
                        message=f"HTTP {response.status_code} fetching {url}",
                    )

                log.info(
                    "fetch_complete",
                    url=url,
                    status_code=response.status_code,
                    content_length=len(response.text),
                )
                return response.text

        except FetchError:
            raise
        except httpx.HTTPError as exc:
            raise FetchError(
                code=ErrorCode.PAGE_FETCH_FAILED,
                message=f"Network error fetching {url}: {exc}",
            ) from exc

        # Unreachable but satisfies the type checker
        raise FetchError(code=ErrorCode.PAGE_FETCH_FAILED, message="Redirect loop")
