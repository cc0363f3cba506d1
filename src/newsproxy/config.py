"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (NEWSPROXY__UPSTREAM__API_KEY=...)
  2. newsproxy.yaml         (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional. Only the upstream API key has no usable default.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("newsproxy")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "cache.db")


def _find_config_file() -> str | None:
    """Return the path of the first newsproxy.yaml found, or None."""
    candidates = [
        Path("newsproxy.yaml"),
        Path(platformdirs.user_config_dir("newsproxy")) / "newsproxy.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = ["http://localhost"]
    cors_methods: list[str] = ["GET", "POST"]


class UpstreamSettings(BaseModel):
    base_url: str = "https://api.bing.microsoft.com/v7.0"
    api_key: str = ""
    timeout_seconds: float = Field(default=5.0, gt=0)
    default_page_size: int = Field(default=20, ge=1, le=100)


class CacheSettings(BaseModel):
    backend: Literal["sqlite", "memory"] = "sqlite"
    db_path: str = _DEFAULT_DB_PATH
    ttl_minutes: int = Field(default=30, gt=0)
    cleanup_interval_minutes: int = Field(default=5, gt=0)
    # Collapse concurrent misses for the same key into one upstream call.
    single_flight: bool = False


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: NEWSPROXY__SERVER__PORT=9090
        env_prefix="NEWSPROXY__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    upstream: UpstreamSettings = UpstreamSettings()
    cache: CacheSettings = CacheSettings()
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
