"""Append-only logs of backup, restore and switch actions.

Both logs are side channels: writing them must never fail the command that
produced the entry.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog

from envswitch.core import fs
from envswitch.core.logging import get_logger, non_critical

MAX_AUDIT_ENTRIES = 100


class AuditLog:
    """JSON array of action entries capped to the most recent ``max_entries``."""

    def __init__(
        self,
        path: Path,
        max_entries: int = MAX_AUDIT_ENTRIES,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.path = path
        self.max_entries = max_entries
        self.logger = logger or get_logger("ops.audit_log")

    def entries(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            self.logger.debug("audit_log_unreadable", path=str(self.path), error=str(exc))
            return []
        if not isinstance(raw, list):
            return []
        return [row for row in raw if isinstance(row, dict)]

    def append(self, entry: dict[str, Any]) -> None:
        """Record ``entry``; a ``timestamp`` is added when missing."""
        row = {"timestamp": datetime.now(tz=UTC).isoformat(), **entry}
        with non_critical(self.logger, "audit_log_write_failed", path=str(self.path), action=row.get("action")):
            rows = self.entries()
            rows.append(row)
            rows = rows[-self.max_entries :]
            fs.write_file(self.path, json.dumps(rows, indent=2, default=str))


class SwitchHistory:
    """Plain-text log, one ``<timestamp> - switched to: <env>`` line per switch."""

    def __init__(self, path: Path, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self.path = path
        self.logger = logger or get_logger("ops.switch_history")

    def append(self, env_name: str) -> None:
        line = f"{datetime.now(tz=UTC).isoformat()} - switched to: {env_name}\n"
        with non_critical(self.logger, "switch_history_write_failed", path=str(self.path), env=env_name):
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(line)

    def lines(self) -> list[str]:
        if not self.path.exists():
            return []
        return self.path.read_text(encoding="utf-8").splitlines()
