from __future__ import annotations

from skimmer.models.page import Page, StyledLine, StyledSpan
from skimmer.models.site import (
    CacheConfig,
    CacheMode,
    CacheSection,
    FormatSection,
    SiteConfig,
    SiteRawConfig,
    SyntaxConfig,
    SyntaxSection,
)
from skimmer.models.style import Color, Style

__all__ = [
    # page
    "Page",
    "StyledLine",
    "StyledSpan",
    # site
    "CacheConfig",
    "CacheMode",
    "CacheSection",
    "FormatSection",
    "SiteConfig",
    "SiteRawConfig",
    "SyntaxConfig",
    "SyntaxSection",
    # style
    "Color",
    "Style",
]
