"""Site-scoped configuration resolution.

Every site profile starts from the same base fragment (built-in defaults
overridden by the user's ``sites.base`` section) and applies its own
fragment files on top, in declared order. A URL is served by the profile
whose glob is the longest matching pattern; if none match, the base
profile (the empty pattern) is used.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import structlog
import yaml
from pydantic import ValidationError

from skimmer.globs import GlobMatcher
from skimmer.models.site import (
    DEFAULT_CULL_PERCENT,
    DEFAULT_MAX_SIZE,
    DEFAULT_TTL_SECONDS,
    MS_IN_SECOND,
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
from skimmer.tags import FormatConfig

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from skimmer.config import Settings, SiteSettings

log = structlog.get_logger()

BASE_PATTERN = ""
DEFAULT_SELECTOR = "body"

_BOLD = Style(bold=True)

DEFAULT_SITE_CONFIG = SiteRawConfig(
    styles={
        "h1": Style(fg=Color.rgb(208, 204, 84), bold=True),
        "h2": _BOLD,
        "h3": _BOLD,
        "h4": _BOLD,
        "strong": _BOLD,
        "b": _BOLD,
        "em": Style(italic=True),
        "i": Style(italic=True),
        "u": Style(underlined=True),
        "del": Style(crossed_out=True),
        "s": Style(crossed_out=True),
        "a": Style(fg=Color.rgb(128, 204, 204)),
        "blockquote": Style(dim=True, italic=True),
        "img": Style(fg=Color.rgb(208, 84, 204)),
    },
    format=FormatSection(
        ignored_tags=[
            "script",
            "style",
            "noscript",
            "head",
            "nav",
            "footer",
            "svg",
            "form",
            "button",
            "iframe",
            "template",
        ],
        block_elements=[
            "p",
            "h1",
            "h2",
            "h3",
            "h4",
            "h5",
            "h6",
            "pre",
            "ul",
            "ol",
            "li",
            "dl",
            "dt",
            "dd",
            "blockquote",
            "table",
            "tr",
            "figure",
            "section",
            "article",
        ],
        indent_elements=["li", "blockquote", "dd"],
    ),
    syntax=SyntaxSection(theme="monokai", default_language=None),
    headers={"Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8"},
)


# ---------------------------------------------------------------------------
# Fragment merging
# ---------------------------------------------------------------------------


def _merge_list(base: list[str], override: list[str]) -> list[str]:
    # An empty override cannot be told apart from "not set", so it keeps base.
    return list(override) if override else list(base)


def merge_fragments(base: SiteRawConfig, override: SiteRawConfig) -> SiteRawConfig:
    """Return ``base`` with ``override`` applied on top. Neither input is mutated."""
    base_format = base.format or FormatSection()
    base_syntax = base.syntax or SyntaxSection()
    base_cache = base.cache or CacheSection()

    format_section = base_format
    if override.format is not None:
        format_section = FormatSection(
            ignored_tags=_merge_list(base_format.ignored_tags, override.format.ignored_tags),
            block_elements=_merge_list(base_format.block_elements, override.format.block_elements),
            indent_elements=_merge_list(
                base_format.indent_elements, override.format.indent_elements
            ),
        )

    syntax_section = base_syntax
    if override.syntax is not None:
        syntax_section = SyntaxSection(
            theme=override.syntax.theme if override.syntax.theme is not None else base_syntax.theme,
            default_language=(
                override.syntax.default_language
                if override.syntax.default_language is not None
                else base_syntax.default_language
            ),
        )

    cache_section = base_cache
    if override.cache is not None:
        cache_section = base_cache.model_copy(
            update=override.cache.model_dump(exclude_none=True)
        )

    return SiteRawConfig(
        styles={**base.styles, **override.styles},
        format=format_section.model_copy(deep=True),
        syntax=syntax_section.model_copy(),
        cache=cache_section.model_copy(),
        headers={**base.headers, **override.headers},
    )


def load_fragment(path: Path) -> SiteRawConfig:
    """Read a YAML fragment. Unreadable or malformed files yield an empty fragment."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        if data is None:
            return SiteRawConfig()
        return SiteRawConfig.model_validate(data)
    except (OSError, UnicodeDecodeError) as exc:
        log.warning("fragment_unreadable", path=str(path), reason=str(exc))
    except yaml.YAMLError:
        log.warning("fragment_malformed", path=str(path), exc_info=True)
    except ValidationError as exc:
        log.warning("fragment_invalid", path=str(path), errors=exc.error_count())
    return SiteRawConfig()


# ---------------------------------------------------------------------------
# Building resolved site configs
# ---------------------------------------------------------------------------


def build_cache_config(section: CacheSection | None, forced: CacheMode | None) -> CacheConfig:
    if forced == CacheMode.FLASH:
        return CacheConfig.flash()
    section = section or CacheSection()
    mode = forced
    if mode is None and section.cache_mode is not None:
        mode = CacheMode.from_config(section.cache_mode)
    ttl_seconds = section.ttl if section.ttl is not None else DEFAULT_TTL_SECONDS
    return CacheConfig(
        mode=mode or CacheMode.NEVER,
        max_size=section.max_size if section.max_size is not None else DEFAULT_MAX_SIZE,
        ttl_ms=ttl_seconds * MS_IN_SECOND,
        cull_percent=DEFAULT_CULL_PERCENT,
    )


class SiteResolver:
    """Resolves the SiteConfig and content selector that apply to a URL."""

    def __init__(
        self,
        sites: SiteSettings,
        *,
        extra_ignored: Iterable[str] = (),
        no_block: bool = False,
        cache_mode: CacheMode | None = None,
        style_overrides: Mapping[str, Style] | None = None,
        selector_override: str | None = None,
    ) -> None:
        self._extra_ignored = list(extra_ignored)
        self._no_block = no_block
        self._cache_mode = cache_mode
        self._style_overrides = dict(style_overrides or {})
        self._selector_override = selector_override

        base_raw = DEFAULT_SITE_CONFIG
        if sites.base is not None:
            base_raw = merge_fragments(base_raw, sites.base)

        self._matcher = GlobMatcher(sites.profiles)
        self._sites: dict[str, SiteConfig] = {BASE_PATTERN: self._build(base_raw)}
        site_dir = Path(sites.site_dir).expanduser()
        for pattern in self._matcher.patterns:
            raw = base_raw.model_copy(deep=True)
            for filename in sites.profiles[pattern]:
                raw = merge_fragments(raw, load_fragment(site_dir / filename))
            self._sites[pattern] = self._build(raw)

        self._selectors = dict(sites.selectors)
        self._selector_matcher = GlobMatcher(self._selectors)

        log.debug("site_resolver_ready", profiles=len(self._sites) - 1)

    @classmethod
    def from_settings(cls, settings: Settings) -> SiteResolver:
        extraction = settings.extraction
        cache_mode = settings.cache.mode
        return cls(
            settings.sites,
            extra_ignored=extraction.ignored_tags,
            no_block=extraction.no_block,
            cache_mode=(
                CacheMode.from_config(cache_mode, allow_flash=True) if cache_mode else None
            ),
            style_overrides={
                selector: Style.parse(text) for selector, text in extraction.styles.items()
            },
            selector_override=extraction.selector,
        )

    def _build(self, raw: SiteRawConfig) -> SiteConfig:
        format_section = raw.format or FormatSection()
        styles = dict(raw.styles)
        for selector, style in self._style_overrides.items():
            existing = styles.get(selector)
            styles[selector] = existing.patch(style) if existing is not None else style

        format_config = FormatConfig.build(
            ignored=[*format_section.ignored_tags, *self._extra_ignored],
            block=[] if self._no_block else format_section.block_elements,
            indent=format_section.indent_elements,
            styles=styles,
        )
        syntax = raw.syntax or SyntaxSection()
        return SiteConfig(
            format=format_config,
            headers=dict(raw.headers),
            cache=build_cache_config(raw.cache, self._cache_mode),
            syntax=SyntaxConfig(
                default_language=syntax.default_language or "",
                theme=syntax.theme or "",
            ),
        )

    @staticmethod
    def _candidates(url: str) -> list[str]:
        bare = url.split("://", 1)[1] if "://" in url else url
        return [url] if bare == url else [url, bare]

    def _best(self, matcher: GlobMatcher, url: str) -> str | None:
        best = [matcher.best_match(candidate) for candidate in self._candidates(url)]
        return max((pattern for pattern in best if pattern is not None), key=len, default=None)

    def match(self, url: str) -> str:
        """Return the pattern of the profile serving ``url`` (``""`` for the base)."""
        return self._best(self._matcher, url) or BASE_PATTERN

    def resolve(self, url: str) -> SiteConfig:
        return self._sites[self.match(url)]

    @property
    def base(self) -> SiteConfig:
        return self._sites[BASE_PATTERN]

    def selector_for(self, url: str) -> str:
        if self._selector_override:
            return self._selector_override
        pattern = self._best(self._selector_matcher, url)
        return self._selectors[pattern] if pattern is not None else DEFAULT_SELECTOR
