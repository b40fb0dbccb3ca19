"""Application configuration via environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def default_data_path() -> Path:
    return Path.home() / ".config" / "slip" / "data.json"


class Settings(BaseSettings):
    """Settings loaded from ``SLIP_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(env_prefix="SLIP_", env_file=".env", extra="ignore")

    data_path: Path = Field(default_factory=default_data_path)
    undo_window_seconds: int = Field(default=300, ge=0)
    log_level: str = "WARNING"
    default_range: int = Field(default=7, ge=1)

    def resolved_data_path(self) -> Path:
        return Path(self.data_path).expanduser().resolve()


def get_settings(**overrides) -> Settings:
    return Settings(**{key: value for key, value in overrides.items() if value is not None})
