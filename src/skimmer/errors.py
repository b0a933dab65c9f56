from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    SELECTOR_INVALID = "SELECTOR_INVALID"
    NO_CONTENT = "NO_CONTENT"
    PAGE_NOT_FOUND = "PAGE_NOT_FOUND"
    PAGE_FETCH_FAILED = "PAGE_FETCH_FAILED"
    FILE_READ_FAILED = "FILE_READ_FAILED"
    CACHE_UNAVAILABLE = "CACHE_UNAVAILABLE"


class SkimmerError(Exception):
    """Raised for every expected extraction failure.

    Caught by the PageExtractor and turned into displayable text. Never
    catch this inside formatting or fetching code; let it reach the
    extractor boundary so the reader sees the message instead of a crash.
    """

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class SelectorError(SkimmerError):
    def __init__(self, selector: str) -> None:
        super().__init__(ErrorCode.SELECTOR_INVALID, "Error: Could not parse selector")
        self.selector = selector


class NoContentError(SkimmerError):
    def __init__(self) -> None:
        super().__init__(ErrorCode.NO_CONTENT, "No content found")


class FetchError(SkimmerError):
    """Network or file read failure. The message is shown verbatim."""


class CacheError(SkimmerError):
    """The persistent cache store could not be opened.

    Only raised at startup. Read and write failures after that are logged
    and downgraded inside ContentCache.
    """

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.CACHE_UNAVAILABLE, message)
