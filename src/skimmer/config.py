"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (SKIMMER__EXTRACTION__COLOR_MODE=always)
  2. skimmer.yaml           (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional; all fields have sensible defaults. Site
fragments referenced from ``sites.profiles`` are separate YAML files that
live in ``sites.site_dir``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from skimmer.models.site import SiteRawConfig

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("skimmer")
_DEFAULT_CONFIG_DIR = platformdirs.user_config_dir("skimmer")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "cache.db")


def _find_config_file() -> str | None:
    """Return the path of the first skimmer.yaml found, or None."""
    candidates = [
        Path("skimmer.yaml"),
        Path(_DEFAULT_CONFIG_DIR) / "skimmer.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class CacheSettings(BaseModel):
    db_path: str = _DEFAULT_DB_PATH
    # Forces a mode for every site; None leaves it to the site config.
    mode: Literal["read", "write", "readwrite", "disabled", "flash"] | None = None


class FetcherSettings(BaseModel):
    timeout_seconds: float = 30.0
    user_agent: str = "skimmer/1.0"
    max_redirects: int = 5


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    format: Literal["json", "text"] = "text"


class ExtractionSettings(BaseModel):
    selector: str | None = None
    nth_element: list[int] = []
    color_mode: Literal["tui", "always", "never"] = "tui"
    ignored_tags: list[str] = []
    no_block: bool = False
    # selector -> "fg=red; bold" override strings
    styles: dict[str, str] = {}


class SiteSettings(BaseModel):
    site_dir: str = _DEFAULT_CONFIG_DIR
    # URL glob -> fragment files applied in order
    profiles: dict[str, list[str]] = {}
    # URL glob -> CSS selector for the content to extract
    selectors: dict[str, str] = {}
    base: SiteRawConfig | None = None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: SKIMMER__CACHE__MODE=flash
        env_prefix="SKIMMER__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    cache: CacheSettings = CacheSettings()
    fetcher: FetcherSettings = FetcherSettings()
    logging: LoggingSettings = LoggingSettings()
    extraction: ExtractionSettings = ExtractionSettings()
    sites: SiteSettings = SiteSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
