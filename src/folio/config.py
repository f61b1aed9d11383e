"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (FOLIO__PORTFOLIO__ENABLE_FRESH_FLAG=true)
  2. folio.yaml             (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from datetime import timedelta
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

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("folio")
_DEFAULT_CACHE_DIR = platformdirs.user_cache_dir("folio")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "http_cache.db")
_DEFAULT_COMPILED_DIR = str(Path(_DEFAULT_CACHE_DIR) / "compiled")


def _find_config_file() -> str | None:
    """Return the path of the first folio.yaml found, or None."""
    candidates = [
        Path("folio.yaml"),
        Path(platformdirs.user_config_dir("folio")) / "folio.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8080


class PortfolioSettings(BaseModel):
    content_path: str = "content"
    templates_path: str = "templates"
    # Searched (not fully matched) against each directory's base name
    gallery_pattern: str = r"^\d{2}\w*-[\w-]+$"
    template_suffix: str = ".html.j2"
    item_suffixes: list[str] = [".jpg", ".jpeg", ".png", ".gif", ".webp"]
    enable_fresh_flag: bool = False
    fresh_flag_interval: timedelta = timedelta(days=30)


class TemplateSettings(BaseModel):
    compiled_dir: str = _DEFAULT_COMPILED_DIR
    bytecode_pattern: str = "folio-%s.cache"


class SessionSettings(BaseModel):
    idle_timeout: timedelta = timedelta(hours=1)
    max_sessions: int = 10_000


class CacheSettings(BaseModel):
    db_path: str = _DEFAULT_DB_PATH
    ttl_hours: int = 1
    cleanup_grace_days: int = 7
    max_age_seconds: int = 3600


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: FOLIO__SERVER__PORT=9090
        env_prefix="FOLIO__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    # Disables session memoization, the freshness check and HTTP caching
    debug: bool = False

    server: ServerSettings = ServerSettings()
    portfolio: PortfolioSettings = PortfolioSettings()
    templates: TemplateSettings = TemplateSettings()
    cache: CacheSettings = CacheSettings()
    sessions: SessionSettings = SessionSettings()
    logging: LoggingSettings = LoggingSettings()

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
