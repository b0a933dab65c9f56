from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import BaseModel

from skimmer.models.style import Style
from skimmer.tags import FormatConfig

MS_IN_SECOND = 1000
FLASH_TTL_MS = 5 * MS_IN_SECOND
DEFAULT_MAX_SIZE = 100
DEFAULT_TTL_SECONDS = 300
DEFAULT_CULL_PERCENT = 10


# ---------------------------------------------------------------------------
# Raw fragments, as read from YAML
# ---------------------------------------------------------------------------


class FormatSection(BaseModel):
    ignored_tags: list[str] = []
    block_elements: list[str] = []
    indent_elements: list[str] = []


class SyntaxSection(BaseModel):
    theme: str | None = None
    default_language: str | None = None


class CacheSection(BaseModel):
    cache_mode: str | None = None
    max_size: int | None = None
    ttl: int | None = None  # seconds


class SiteRawConfig(BaseModel):
    """One configuration fragment. Every section is optional."""

    styles: dict[str, Style] = {}
    format: FormatSection | None = None
    syntax: SyntaxSection | None = None
    cache: CacheSection | None = None
    headers: dict[str, str] = {}


# ---------------------------------------------------------------------------
# Resolved configuration
# ---------------------------------------------------------------------------


class CacheMode(StrEnum):
    READ = "read"
    WRITE = "write"
    READ_WRITE = "readwrite"
    NEVER = "never"
    FLASH = "flash"

    @classmethod
    def from_config(cls, value: str, *, allow_flash: bool = False) -> CacheMode:
        """Map a config string to a mode. Unknown values disable caching.

        ``flash`` is only meaningful as the run-wide override; a site
        fragment asking for it gets NEVER.
        """
        normalised = value.strip().lower()
        if normalised == "disabled" or (normalised == "flash" and not allow_flash):
            return cls.NEVER
        try:
            return cls(normalised)
        except ValueError:
            return cls.NEVER

    @property
    def reads(self) -> bool:
        return self in (CacheMode.READ, CacheMode.READ_WRITE)

    @property
    def writes(self) -> bool:
        return self in (CacheMode.WRITE, CacheMode.READ_WRITE)


@dataclass(frozen=True)
class CacheConfig:
    mode: CacheMode = CacheMode.NEVER
    max_size: int = DEFAULT_MAX_SIZE
    ttl_ms: int = DEFAULT_TTL_SECONDS * MS_IN_SECOND
    cull_percent: int = DEFAULT_CULL_PERCENT

    @classmethod
    def flash(cls) -> CacheConfig:
        """Short-lived cache for re-reads within a single run."""
        return cls(CacheMode.READ_WRITE, 2**63 - 1, FLASH_TTL_MS, 0)


@dataclass(frozen=True)
class SyntaxConfig:
    default_language: str = ""
    theme: str = ""


@dataclass(frozen=True)
class SiteConfig:
    format: FormatConfig = field(default_factory=FormatConfig)
    headers: dict[str, str] = field(default_factory=dict)
    cache: CacheConfig = field(default_factory=CacheConfig)
    syntax: SyntaxConfig = field(default_factory=SyntaxConfig)
