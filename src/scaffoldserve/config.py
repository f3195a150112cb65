"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (SCAFFOLDSERVE__SERVICE__PROVIDER_NAME=earlham)
  2. scaffoldserve.yaml     (searched in cwd, then the platform config dir)
  3. Hardcoded defaults

The index table lives under ``index_files`` and keeps the shape used by the
service configuration files: either a single object or an array of objects::

    index_files:
      - "Blast database": wheatA
        Fasta: /data/wheatA.fa
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from scaffoldserve.models.tools import DEFAULT_LINE_BREAK

_APP_NAME = "scaffoldserve"
_DEFAULT_DATA_DIR = platformdirs.user_data_dir(_APP_NAME)
_DEFAULT_JOBS_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "jobs.db")


def _find_config_file() -> str | None:
    """Return the path of the first scaffoldserve.yaml found, or None."""
    candidates = [
        Path("scaffoldserve.yaml"),
        Path(platformdirs.user_config_dir(_APP_NAME)) / "scaffoldserve.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    transport: Literal["stdio", "http"] = "stdio"
    host: str = "127.0.0.1"
    port: int = 8080


class ServiceSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Namespace used to qualify store ids when peers are configured
    provider_name: str | None = None
    default_line_break: int = DEFAULT_LINE_BREAK
    # Optional standalone JSON file: {"index_files": [...]}
    index_config_path: str | None = None

    @field_validator("default_line_break")
    @classmethod
    def validate_default_line_break(cls, v: int) -> int:
        if v < 0:
            raise ValueError("default_line_break must be >= 0")
        return v


class FetcherSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # When set, on-disk SQLite indexes are kept here and reused between requests
    index_dir: str | None = None
    max_record_bytes: int = 256 * 1024 * 1024

    @field_validator("max_record_bytes")
    @classmethod
    def validate_max_record_bytes(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_record_bytes must be >= 1")
        return v


class PeerSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    url: str

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("peer url must use http or https scheme")
        return v


class DelegationSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    timeout_seconds: float = 30.0


class JobSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    db_path: str = _DEFAULT_JOBS_DB_PATH
    # Finished jobs older than this are purged at startup
    retention_days: int = 7


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: SCAFFOLDSERVE__SERVER__PORT=9090
        env_prefix="SCAFFOLDSERVE__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    service: ServiceSettings = ServiceSettings()
    fetcher: FetcherSettings = FetcherSettings()
    delegation: DelegationSettings = DelegationSettings()
    jobs: JobSettings = JobSettings()
    logging: LoggingSettings = LoggingSettings()
    peers: list[PeerSettings] = Field(default_factory=list)
    index_files: list[dict[str, Any]] | dict[str, Any] = Field(default_factory=list)

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
