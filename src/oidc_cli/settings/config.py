from __future__ import annotations

from functools import lru_cache
from importlib.metadata import PackageNotFoundError, version as pkg_version
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _package_version(default: str = "0.1.0") -> str:
    try:
        return pkg_version("oidc-cli")
    except PackageNotFoundError:
        return default


def _default_config_dir() -> Path:
    return Path.home() / ".config" / "oidc-cli"


class FlowSettings(BaseModel):
    # Deadlines in seconds
    callback_timeout: float = 300.0
    discovery_timeout: float = 30.0
    token_timeout: float = 30.0

    # Browser token hand-off through GET /token on the callback server
    expose_token_to_browser: bool = False
    token_handoff_linger: float = 5.0


class ServerSettings(BaseModel):
    log_level: Literal["critical", "error", "warning", "info", "debug", "trace"] = "warning"


class ProfileSettings(BaseModel):
    config_dir: Path = Field(default_factory=_default_config_dir)
    file_name: str = "profiles.json"

    def path(self) -> Path:
        return self.config_dir / self.file_name


class LoggingSettings(BaseModel):
    as_json: bool = False
    level: str = "warning"


class Settings(BaseSettings):
    """Application settings loaded from environment (and .env)."""

    # App metadata
    app_name: str = "oidc-cli"
    app_version: str = Field(default_factory=_package_version)

    # Groups
    flow: FlowSettings = FlowSettings()
    server: ServerSettings = ServerSettings()
    profiles: ProfileSettings = ProfileSettings()
    logging: LoggingSettings = LoggingSettings()

    model_config = SettingsConfigDict(
        env_prefix="OIDC_CLI_",
        env_nested_delimiter="__",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
