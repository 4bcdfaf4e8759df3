"""Named environment files: create, switch, list and compare."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import structlog

from envswitch.core import fs
from envswitch.core.config import CURRENT_ENV, Settings, get_settings
from envswitch.core.errors import EnvFileExistsError, EnvFileNotFoundError
from envswitch.core.logging import get_logger, non_critical
from envswitch.envfile.diff import DiffResult, diff_envs
from envswitch.envfile.parser import ValidationResult, parse_env_file, validate_format
from envswitch.ops.audit_log import AuditLog, SwitchHistory
from envswitch.ops.backups import BackupManager

FALLBACK_TEMPLATE = "local"
# Keys compared to decide whether a named file is the active one
IDENTITY_KEYS = ("APP_ENV", "APP_NAME", "DB_DATABASE")


@dataclass(frozen=True)
class EnvironmentInfo:
    name: str
    file: str
    size: int
    modified: datetime
    is_current: bool


@dataclass
class CurrentEnvironment:
    file: str
    size: int
    modified: datetime
    environment: str
    variable_count: int
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


class EnvironmentManager:
    def __init__(
        self,
        settings: Settings | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
        backups: BackupManager | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.logger = logger or get_logger("ops.environments")
        self.project_path = self.settings.project_path
        self.env_file = self.settings.env_file
        self.backups = backups or BackupManager(self.settings, logger=self.logger)
        self.audit_log = AuditLog(
            self.settings.audit_log_path,
            max_entries=self.settings.audit_log_max_entries,
            logger=self.logger,
        )
        self.switch_history = SwitchHistory(self.settings.switch_history_path, logger=self.logger)

    def create(self, env_name: str, source: str | None = None, use_template: bool = False) -> Path:
        """Create ``.env.<env_name>`` from a project file or a built-in template.

        Raises:
            EnvFileExistsError: the target already exists.
            EnvFileNotFoundError: the source file or template is missing.
        """
        target = self.settings.named_env_file(env_name)
        if fs.exists(target):
            raise EnvFileExistsError(target)

        if use_template:
            source_path = self._template_for(env_name)
        else:
            source_path = self.project_path / (source or self.settings.default_source)
        if not fs.exists(source_path):
            raise EnvFileNotFoundError(source_path, what="Source file")

        fs.copy(source_path, target)
        if use_template:
            with non_critical(self.logger, "template_substitution_failed", level="warning", target=target.name):
                self._replace_template_variables(target, env_name)

        self.logger.info("environment_created", env=env_name, source=source_path.name)
        self._report(validate_format(target), target.name)
        return target

    def switch(self, env_name: str) -> ValidationResult:
        """Make ``.env.<env_name>`` the active file, backing up the previous one."""
        source = self.settings.named_env_file(env_name)
        if not fs.exists(source):
            raise EnvFileNotFoundError(source)

        if fs.exists(self.env_file):
            with non_critical(self.logger, "pre_switch_backup_failed", level="warning", env=env_name):
                self.backups.create()

        fs.copy(source, self.env_file)
        validation = validate_format(self.env_file)
        self._report(validation, self.env_file.name)

        self.switch_history.append(env_name)
        self.audit_log.append({"target": env_name, "action": "switch"})
        self.logger.info("environment_switched", env=env_name)
        return validation

    def list(self) -> list[EnvironmentInfo]:
        prefix = f"{self.settings.env_file_name}."
        environments: list[EnvironmentInfo] = []
        for file_name in fs.list_files(self.project_path, "^" + re.escape(prefix)):
            name = file_name[len(prefix) :]
            st = fs.stat(self.project_path / file_name)
            environments.append(
                EnvironmentInfo(
                    name=name,
                    file=file_name,
                    size=st.size,
                    modified=st.mtime,
                    is_current=self._is_current(name),
                )
            )
        return sorted(environments, key=lambda e: e.modified, reverse=True)

    def current(self) -> CurrentEnvironment | None:
        if not fs.exists(self.env_file):
            return None
        st = fs.stat(self.env_file)
        validation = validate_format(self.env_file)
        values = parse_env_file(self.env_file)
        return CurrentEnvironment(
            file=self.env_file.name,
            size=st.size,
            modified=st.mtime,
            environment=values.get("APP_ENV") or "unknown",
            variable_count=len(values),
            errors=validation.errors,
            warnings=validation.warnings,
        )

    def diff(self, env1: str, env2: str = CURRENT_ENV) -> DiffResult:
        """Compare two environments; ``current`` names the active file.

        Both files are checked for existence before either is parsed.
        """
        path1 = self.settings.named_env_file(env1)
        path2 = self.settings.named_env_file(env2)
        for name, path in ((env1, path1), (env2, path2)):
            if not fs.exists(path):
                raise EnvFileNotFoundError(path, what=f"Environment '{name}'")
        return diff_envs(parse_env_file(path1), parse_env_file(path2))

    def _template_for(self, env_name: str) -> Path:
        templates = self.settings.templates_dir
        candidate = templates / f"env.{env_name}.template"
        if fs.exists(candidate):
            return candidate
        return templates / f"env.{FALLBACK_TEMPLATE}.template"

    def _replace_template_variables(self, path: Path, env_name: str) -> None:
        project_name = self.project_path.resolve().name
        content = fs.read_file(path)
        content = content.replace("MyApp", project_name)
        content = re.sub(r"myapp_(local|staging|production)", lambda _m: f"{project_name}_{env_name}", content)
        fs.write_file(path, content)

    def _is_current(self, env_name: str) -> bool:
        if not fs.exists(self.env_file):
            return False
        try:
            current = parse_env_file(self.env_file)
            candidate = parse_env_file(self.settings.named_env_file(env_name))
        except (OSError, UnicodeDecodeError):
            return False
        return all(current.get(key) == candidate.get(key) for key in IDENTITY_KEYS)

    def _report(self, validation: ValidationResult, file_name: str) -> None:
        for error in validation.errors:
            self.logger.warning("env_file_invalid", file=file_name, error=error)
        for warning in validation.warnings:
            self.logger.debug("env_file_warning", file=file_name, warning=warning)
