"""Timestamped snapshots of env files with retention-based cleanup.

Backups carry no sidecar metadata: everything the engine knows about a
snapshot comes from its file name and its stat. The grammar is

    .env.backup.<name>.<YYYYMMDD_HHMMSS>

and is only ever built by :func:`build_backup_file_name` and read back by
:func:`parse_backup_file_name`.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import structlog

from envswitch.core import fs
from envswitch.core.config import CURRENT_ENV, Settings, get_settings
from envswitch.core.errors import BackupNotFoundError, EnvFileNotFoundError, InvalidBackupNameError
from envswitch.core.logging import get_logger
from envswitch.envfile.parser import parse_env_file
from envswitch.ops.audit_log import AuditLog

BACKUP_PREFIX = ".env.backup."
BACKUP_PATTERN = r"^\.env\.backup\."
BEFORE_RESTORE = "before-restore"
UNKNOWN_ENV = "unknown"
PATH_SEPARATORS = frozenset({"/", "\\", os.sep})


@dataclass(frozen=True)
class BackupRecord:
    file_name: str
    env_name: str
    timestamp: str
    size: int
    created: datetime
    age: str


@dataclass(frozen=True)
class BackupInfo:
    file_name: str
    env_name: str
    timestamp: str
    size: int
    created: datetime
    age: str
    variable_count: int
    line_count: int


@dataclass(frozen=True)
class CleanResult:
    deleted: int
    kept: int


def build_backup_file_name(name: str, timestamp: str) -> str:
    """Raises InvalidBackupNameError when ``name`` holds a path separator."""
    if any(sep in name for sep in PATH_SEPARATORS):
        raise InvalidBackupNameError(name)
    return f"{BACKUP_PREFIX}{name}.{timestamp}"


def parse_backup_file_name(file_name: str) -> tuple[str, str]:
    """Recover ``(env_name, timestamp)`` from a backup file name.

    Total: names that do not follow the grammar yield ``("unknown", "")``.
    """
    parts = file_name.split(".")
    if len(parts) >= 4:
        timestamp = parts[4] if len(parts) > 4 else ""
        return parts[3], timestamp
    return UNKNOWN_ENV, ""


def format_age(created: datetime, now: datetime | None = None) -> str:
    elapsed = (now or datetime.now(tz=UTC)) - created
    seconds = int(elapsed.total_seconds())
    days, hours, minutes = seconds // 86_400, seconds // 3_600, seconds // 60
    if days > 0:
        return f"{days} days ago"
    if hours > 0:
        return f"{hours} hours ago"
    if minutes > 0:
        return f"{minutes} minutes ago"
    return "just now"


def count_variables(content: str) -> int:
    count = 0
    for raw in content.split("\n"):
        line = raw.strip()
        if line and not line.startswith("#") and "=" in line:
            count += 1
    return count


class BackupManager:
    """Create, list, restore and prune snapshots in the backup directory."""

    def __init__(
        self,
        settings: Settings | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
        timestamp_factory: Callable[[], str] = fs.generate_timestamp,
    ) -> None:
        self.settings = settings or get_settings()
        self.logger = logger or get_logger("ops.backups")
        self.backup_dir = self.settings.backup_dir
        self.env_file = self.settings.env_file
        self.audit_log = AuditLog(
            self.settings.audit_log_path,
            max_entries=self.settings.audit_log_max_entries,
            logger=self.logger,
        )
        self._timestamp = timestamp_factory

    def backup_path(self, backup_name: str) -> Path:
        """Path of ``backup_name``, which must sit directly inside the backup directory."""
        if backup_name in ("", ".", "..") or any(sep in backup_name for sep in PATH_SEPARATORS):
            raise InvalidBackupNameError(backup_name)
        return self.backup_dir / backup_name

    def create(self, env_name: str | None = None, custom_name: str | None = None) -> str:
        """Snapshot a named environment file, or the active file when ``env_name`` is None.

        Returns:
            The new backup file name.

        Raises:
            EnvFileNotFoundError: the source file does not exist.
            InvalidBackupNameError: the backup name contains a path separator.
        """
        if env_name:
            source = self.settings.named_env_file(env_name)
            logical_name = env_name
        else:
            source = self.env_file
            logical_name = self._current_env_name()

        if not fs.exists(source):
            raise EnvFileNotFoundError(source, what="File to back up")

        file_name = build_backup_file_name(custom_name or logical_name, self._timestamp())
        fs.ensure_dir(self.backup_dir)
        fs.copy(source, self.backup_path(file_name))

        self.audit_log.append(
            {
                "backupFile": file_name,
                "sourceFile": source.name,
                "customName": custom_name,
                "action": "create",
            }
        )
        self.logger.info("backup_created", backup=file_name, source=source.name)
        return file_name

    def list(self, now: datetime | None = None) -> list[BackupRecord]:
        """All backups, newest first. Empty when the backup directory is absent."""
        if not fs.exists(self.backup_dir):
            return []

        now_dt = now or datetime.now(tz=UTC)
        records: list[BackupRecord] = []
        for file_name in fs.list_files(self.backup_dir, BACKUP_PATTERN):
            st = fs.stat(self.backup_path(file_name))
            env_name, timestamp = parse_backup_file_name(file_name)
            records.append(
                BackupRecord(
                    file_name=file_name,
                    env_name=env_name,
                    timestamp=timestamp,
                    size=st.size,
                    created=st.mtime,
                    age=format_age(st.mtime, now_dt),
                )
            )
        # sorted() is stable, so equal mtimes keep name order
        return sorted(records, key=lambda r: r.created, reverse=True)

    def restore(self, backup_name: str) -> None:
        """Overwrite the active file with a backup.

        The active file, when present, is snapshotted as ``before-restore``
        first. That snapshot is kept even if the copy below fails.
        """
        backup_path = self.backup_path(backup_name)
        if not fs.exists(backup_path):
            raise BackupNotFoundError(backup_name)

        if fs.exists(self.env_file):
            saved = self.create(None, BEFORE_RESTORE)
            self.logger.info("current_env_backed_up", backup=saved)

        fs.copy(backup_path, self.env_file)
        self.audit_log.append({"backupFile": backup_name, "action": "restore"})
        self.logger.info("backup_restored", backup=backup_name)

    def clean(
        self,
        older_than_days: int | None = None,
        keep_minimum: int | None = None,
        now: datetime | None = None,
    ) -> CleanResult:
        """Delete old backups beyond the ``keep_minimum`` newest.

        Only backups past index ``keep_minimum`` in the newest-first listing
        are candidates; a candidate is removed when it was created strictly
        before ``now - older_than_days``. A failed deletion aborts the clean
        and propagates; backups removed before it stay removed.
        """
        days = self.settings.clean_older_than_days if older_than_days is None else older_than_days
        keep = self.settings.clean_keep_minimum if keep_minimum is None else keep_minimum

        now_dt = now or datetime.now(tz=UTC)
        backups = self.list(now=now_dt)
        if len(backups) <= keep:
            self.logger.info("clean_skipped", backups=len(backups), keep_minimum=keep)
            return CleanResult(deleted=0, kept=len(backups))

        cutoff = now_dt - timedelta(days=days)
        to_delete = [b for b in backups[keep:] if b.created < cutoff]

        deleted = 0
        for backup in to_delete:
            fs.delete_file(self.backup_path(backup.file_name))
            deleted += 1
            self.logger.debug("backup_deleted", backup=backup.file_name)

        self.logger.info("clean_finished", deleted=deleted, kept=len(backups) - deleted)
        return CleanResult(deleted=deleted, kept=len(backups) - deleted)

    def get_backup_info(self, backup_name: str, now: datetime | None = None) -> BackupInfo:
        backup_path = self.backup_path(backup_name)
        if not fs.exists(backup_path):
            raise BackupNotFoundError(backup_name)

        st = fs.stat(backup_path)
        content = fs.read_file(backup_path)
        env_name, timestamp = parse_backup_file_name(backup_name)
        return BackupInfo(
            file_name=backup_name,
            env_name=env_name,
            timestamp=timestamp,
            size=st.size,
            created=st.mtime,
            age=format_age(st.mtime, now),
            variable_count=count_variables(content),
            line_count=len(content.split("\n")),
        )

    def history(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Audit entries, oldest first; ``limit`` keeps the most recent ones."""
        entries = self.audit_log.entries()
        if limit is not None:
            entries = entries[-limit:] if limit > 0 else []
        return entries

    def _current_env_name(self) -> str:
        try:
            values = parse_env_file(self.env_file)
        except (OSError, UnicodeDecodeError):
            return CURRENT_ENV
        return values.get("APP_ENV") or CURRENT_ENV
