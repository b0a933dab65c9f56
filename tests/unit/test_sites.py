"""Unit tests for skimmer.sites: fragment merging and profile resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING

from skimmer.config import Settings, SiteSettings
from skimmer.models.site import (
    FLASH_TTL_MS,
    CacheConfig,
    CacheMode,
    CacheSection,
    FormatSection,
    SiteRawConfig,
    SyntaxSection,
)
from skimmer.models.style import Color, Style
from skimmer.sites import (
    DEFAULT_SELECTOR,
    SiteResolver,
    build_cache_config,
    load_fragment,
    merge_fragments,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from bs4 import Tag


def _write(path: Path, text: str) -> str:
    path.write_text(text, encoding="utf-8")
    return path.name


# ---------------------------------------------------------------------------
# merge_fragments
# ---------------------------------------------------------------------------


class TestMergeFragments:
    def test_scalars_replaced_only_when_present(self) -> None:
        base = SiteRawConfig(syntax=SyntaxSection(theme="monokai", default_language="python"))
        merged = merge_fragments(base, SiteRawConfig(syntax=SyntaxSection(theme="friendly")))
        assert merged.syntax == SyntaxSection(theme="friendly", default_language="python")

    def test_maps_merge_key_by_key(self) -> None:
        base = SiteRawConfig(
            styles={"h1": Style(bold=True), "a": Style(underlined=True)},
            headers={"Accept": "text/html", "X-One": "1"},
        )
        override = SiteRawConfig(styles={"a": Style(italic=True)}, headers={"X-One": "2"})
        merged = merge_fragments(base, override)
        assert merged.styles == {"h1": Style(bold=True), "a": Style(italic=True)}
        assert merged.headers == {"Accept": "text/html", "X-One": "2"}

    def test_non_empty_list_replaces(self) -> None:
        base = SiteRawConfig(format=FormatSection(ignored_tags=["nav", "footer"]))
        override = SiteRawConfig(format=FormatSection(ignored_tags=["aside"]))
        assert merge_fragments(base, override).format.ignored_tags == ["aside"]

    def test_empty_list_keeps_base(self) -> None:
        base = SiteRawConfig(format=FormatSection(block_elements=["p"], indent_elements=["li"]))
        override = SiteRawConfig(format=FormatSection(block_elements=["div"]))
        merged = merge_fragments(base, override)
        assert merged.format.block_elements == ["div"]
        assert merged.format.indent_elements == ["li"]

    def test_cache_fields_merge(self) -> None:
        base = SiteRawConfig(cache=CacheSection(cache_mode="readwrite", max_size=10, ttl=60))
        override = SiteRawConfig(cache=CacheSection(ttl=5))
        assert merge_fragments(base, override).cache == CacheSection(
            cache_mode="readwrite", max_size=10, ttl=5
        )

    def test_inputs_not_mutated(self) -> None:
        base = SiteRawConfig(format=FormatSection(ignored_tags=["nav"]))
        merged = merge_fragments(base, SiteRawConfig())
        merged.format.ignored_tags.append("footer")
        assert base.format.ignored_tags == ["nav"]


# ---------------------------------------------------------------------------
# load_fragment
# ---------------------------------------------------------------------------


class TestLoadFragment:
    def test_valid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "docs.yaml"
        path.write_text(
            "styles:\n  h1:\n    fg: red\n    bold: true\nheaders:\n  Cookie: a=b\n",
            encoding="utf-8",
        )
        fragment = load_fragment(path)
        assert fragment.styles["h1"] == Style(fg=Color.rgb(208, 84, 84), bold=True)
        assert fragment.headers == {"Cookie": "a=b"}

    def test_missing_file_gives_empty_fragment(self, tmp_path: Path) -> None:
        assert load_fragment(tmp_path / "absent.yaml") == SiteRawConfig()

    def test_malformed_yaml_gives_empty_fragment(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("styles: [unclosed\n", encoding="utf-8")
        assert load_fragment(path) == SiteRawConfig()

    def test_wrong_shape_gives_empty_fragment(self, tmp_path: Path) -> None:
        path = tmp_path / "shape.yaml"
        path.write_text("styles: 5\n", encoding="utf-8")
        assert load_fragment(path) == SiteRawConfig()

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_fragment(path) == SiteRawConfig()


# ---------------------------------------------------------------------------
# Cache config
# ---------------------------------------------------------------------------


class TestBuildCacheConfig:
    def test_defaults_without_section(self) -> None:
        assert build_cache_config(None, None) == CacheConfig(CacheMode.NEVER, 100, 300_000, 10)

    def test_partial_section_uses_defaults(self) -> None:
        config = build_cache_config(CacheSection(cache_mode="readwrite"), None)
        assert config == CacheConfig(CacheMode.READ_WRITE, 100, 300_000, 10)

    def test_disabled_and_unknown_modes_map_to_never(self) -> None:
        assert build_cache_config(CacheSection(cache_mode="disabled"), None).mode == CacheMode.NEVER
        assert build_cache_config(CacheSection(cache_mode="sometimes"), None).mode == CacheMode.NEVER

    def test_forced_mode_wins(self) -> None:
        config = build_cache_config(CacheSection(cache_mode="readwrite", ttl=1), CacheMode.READ)
        assert config.mode == CacheMode.READ
        assert config.ttl_ms == 1000

    def test_flash(self) -> None:
        config = build_cache_config(CacheSection(cache_mode="never"), CacheMode.FLASH)
        assert config.mode == CacheMode.READ_WRITE
        assert config.ttl_ms == FLASH_TTL_MS
        assert config.cull_percent == 0
        assert config.max_size == 2**63 - 1

    def test_flash_in_fragment_maps_to_never(self) -> None:
        assert CacheMode.from_config("flash") == CacheMode.NEVER
        config = build_cache_config(CacheSection(cache_mode="flash"), None)
        assert config == CacheConfig(CacheMode.NEVER, 100, 300_000, 10)

    def test_flash_as_run_override(self, tmp_path: Path) -> None:
        settings = Settings(cache={"mode": "flash"}, sites={"site_dir": str(tmp_path)})
        assert SiteResolver.from_settings(settings).base.cache == CacheConfig.flash()


# ---------------------------------------------------------------------------
# SiteResolver
# ---------------------------------------------------------------------------


class TestSiteResolver:
    def test_specificity(self, tmp_path: Path) -> None:
        site_a = _write(tmp_path / "a.yaml", "syntax:\n  theme: theme-a\n")
        site_b = _write(tmp_path / "b.yaml", "syntax:\n  theme: theme-b\n")
        resolver = SiteResolver(
            SiteSettings(
                site_dir=str(tmp_path),
                profiles={"example.com/*": [site_a], "*.org": [site_b]},
            )
        )
        assert resolver.resolve("https://example.com/page").syntax.theme == "theme-a"
        assert resolver.resolve("https://python.org").syntax.theme == "theme-b"
        assert resolver.resolve("https://other.net").syntax.theme == "monokai"

    def test_longest_matching_pattern_wins(self, tmp_path: Path) -> None:
        broad = _write(tmp_path / "broad.yaml", "syntax:\n  theme: broad\n")
        narrow = _write(tmp_path / "narrow.yaml", "syntax:\n  theme: narrow\n")
        resolver = SiteResolver(
            SiteSettings(
                site_dir=str(tmp_path),
                profiles={"*": [broad], "docs.python.org/*": [narrow]},
            )
        )
        assert resolver.match("https://docs.python.org/3/") == "docs.python.org/*"
        assert resolver.resolve("https://docs.python.org/3/").syntax.theme == "narrow"
        assert resolver.resolve("https://example.com").syntax.theme == "broad"

    def test_longest_match_across_scheme_and_bare_url(self, tmp_path: Path) -> None:
        secure = _write(tmp_path / "secure.yaml", "syntax:\n  theme: secure\n")
        docs = _write(tmp_path / "docs.yaml", "syntax:\n  theme: docs\n")
        resolver = SiteResolver(
            SiteSettings(
                site_dir=str(tmp_path),
                profiles={"https://*": [secure], "example.com/docs/*": [docs]},
            )
        )
        assert resolver.match("https://example.com/docs/intro") == "example.com/docs/*"
        assert resolver.match("https://example.com/blog") == "https://*"
        assert resolver.match("http://example.com/blog") == ""

    def test_later_fragments_win(self, tmp_path: Path) -> None:
        first = _write(tmp_path / "first.yaml", "headers:\n  X-A: one\n  X-B: one\n")
        second = _write(tmp_path / "second.yaml", "headers:\n  X-B: two\n")
        resolver = SiteResolver(
            SiteSettings(site_dir=str(tmp_path), profiles={"*.dev": [first, second]})
        )
        headers = resolver.resolve("https://pydantic.dev").headers
        assert headers["X-A"] == "one"
        assert headers["X-B"] == "two"

    def test_unreadable_fragment_falls_back_to_base(self, tmp_path: Path) -> None:
        resolver = SiteResolver(
            SiteSettings(site_dir=str(tmp_path), profiles={"*.dev": ["missing.yaml"]})
        )
        assert resolver.resolve("https://x.dev").syntax == resolver.base.syntax

    def test_invalid_glob_skipped(self, tmp_path: Path) -> None:
        site = _write(tmp_path / "s.yaml", "syntax:\n  theme: s\n")
        resolver = SiteResolver(
            SiteSettings(site_dir=str(tmp_path), profiles={"[bad": [site], "*.io": [site]})
        )
        assert resolver.resolve("https://crates.io").syntax.theme == "s"
        assert resolver.match("https://[bad") == ""

    def test_user_base_overrides_defaults(self, tmp_path: Path) -> None:
        resolver = SiteResolver(
            SiteSettings(
                site_dir=str(tmp_path),
                base=SiteRawConfig(cache=CacheSection(cache_mode="readwrite", ttl=10)),
            )
        )
        assert resolver.base.cache == CacheConfig(CacheMode.READ_WRITE, 100, 10_000, 10)

    def test_forced_cache_mode_applies_to_every_profile(self, tmp_path: Path) -> None:
        site = _write(tmp_path / "s.yaml", "cache:\n  cache_mode: read\n")
        resolver = SiteResolver(
            SiteSettings(site_dir=str(tmp_path), profiles={"*.io": [site]}),
            cache_mode=CacheMode.FLASH,
        )
        assert resolver.resolve("https://crates.io").cache == CacheConfig.flash()
        assert resolver.base.cache == CacheConfig.flash()


class TestResolverOverrides:
    def test_extra_ignored_and_no_block(
        self, tmp_path: Path, body: Callable[[str], Tag]
    ) -> None:
        resolver = SiteResolver(
            SiteSettings(site_dir=str(tmp_path)), extra_ignored=["aside"], no_block=True
        )
        fmt = resolver.base.format
        element = body("<aside>x</aside><p>y</p><form>z</form>")
        assert fmt.ignored.matches(element.aside)
        assert fmt.ignored.matches(element.form)
        assert not fmt.block.matches(element.p)

    def test_style_override_patches_existing(
        self, tmp_path: Path, body: Callable[[str], Tag]
    ) -> None:
        resolver = SiteResolver(
            SiteSettings(site_dir=str(tmp_path)),
            style_overrides={"h2": Style(fg=Color.rgb(1, 2, 3)), "kbd": Style(italic=True)},
        )
        element = body("<h2>t</h2><kbd>k</kbd>")
        styles = resolver.base.format.styles
        assert styles.style_for(element.h2) == Style(fg=Color.rgb(1, 2, 3), bold=True)
        assert styles.style_for(element.kbd) == Style(italic=True)


class TestSelectorFor:
    def test_default_is_body(self, tmp_path: Path) -> None:
        resolver = SiteResolver(SiteSettings(site_dir=str(tmp_path)))
        assert resolver.selector_for("https://example.com") == DEFAULT_SELECTOR

    def test_longest_pattern_selector(self, tmp_path: Path) -> None:
        resolver = SiteResolver(
            SiteSettings(
                site_dir=str(tmp_path),
                selectors={"*": "main", "en.wikipedia.org/*": "div#mw-content-text"},
            )
        )
        assert resolver.selector_for("https://en.wikipedia.org/wiki/Python") == "div#mw-content-text"
        assert resolver.selector_for("https://example.com") == "main"

    def test_explicit_override_wins(self, tmp_path: Path) -> None:
        resolver = SiteResolver(
            SiteSettings(site_dir=str(tmp_path), selectors={"*": "main"}),
            selector_override="article",
        )
        assert resolver.selector_for("https://example.com") == "article"
