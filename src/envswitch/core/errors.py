"""Exceptions raised by envswitch operations."""

from __future__ import annotations

from pathlib import Path


class EnvSwitchError(Exception):
    """Base class for errors surfaced to the CLI."""


class EnvFileNotFoundError(EnvSwitchError, FileNotFoundError):
    """A source, environment or backup file does not exist."""

    def __init__(self, path: Path | str, what: str = "Environment file") -> None:
        self.path = Path(path)
        super().__init__(f"{what} not found: {path}")


class BackupNotFoundError(EnvFileNotFoundError):
    def __init__(self, backup_name: str) -> None:
        super().__init__(backup_name, what="Backup")
        self.backup_name = backup_name


class EnvFileExistsError(EnvSwitchError, FileExistsError):
    """Refusing to overwrite an existing environment file."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"Environment file already exists: {self.path.name}")


class InvalidBackupNameError(EnvSwitchError, ValueError):
    """A backup name would place the file outside the backup directory."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Invalid backup name: {name!r}")
