"""Centralized runtime settings."""

from __future__ import annotations

from enum import StrEnum
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

CURRENT_ENV = "current"


class LogFormat(StrEnum):
    """Supported logging formats."""

    JSON = "json"
    CONSOLE = "console"


class Settings(BaseSettings):
    """Tool configuration loaded from ENVSWITCH_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ENVSWITCH_",
        case_sensitive=False,
        extra="ignore",
    )

    project_path: Path = Path(".")
    env_file_name: str = ".env"
    backup_dir_name: str = ".env-backups"
    audit_log_name: str = ".backup-log"
    switch_history_name: str = ".switch-history"
    default_source: str = ".env.example"

    audit_log_max_entries: Annotated[int, Field(ge=1)] = 100
    clean_older_than_days: Annotated[int, Field(ge=0)] = 30
    clean_keep_minimum: Annotated[int, Field(ge=0)] = 5

    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.CONSOLE

    @property
    def env_file(self) -> Path:
        """The active environment file."""
        return self.project_path / self.env_file_name

    @property
    def backup_dir(self) -> Path:
        return self.project_path / self.backup_dir_name

    @property
    def audit_log_path(self) -> Path:
        return self.backup_dir / self.audit_log_name

    @property
    def switch_history_path(self) -> Path:
        return self.backup_dir / self.switch_history_name

    @property
    def templates_dir(self) -> Path:
        """Built-in templates shipped with the package."""
        return Path(__file__).resolve().parent.parent / "templates"

    def named_env_file(self, env_name: str) -> Path:
        """Resolve an environment name to its file; ``current`` is the active file."""
        if env_name == CURRENT_ENV:
            return self.env_file
        return self.project_path / f"{self.env_file_name}.{env_name}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
