"""Environment switching, backups and action logs."""

from envswitch.ops.audit_log import AuditLog, SwitchHistory
from envswitch.ops.backups import BackupInfo, BackupManager, BackupRecord, CleanResult
from envswitch.ops.environments import CurrentEnvironment, EnvironmentInfo, EnvironmentManager

__all__ = [
    "AuditLog",
    "BackupInfo",
    "BackupManager",
    "BackupRecord",
    "CleanResult",
    "CurrentEnvironment",
    "EnvironmentInfo",
    "EnvironmentManager",
    "SwitchHistory",
]
