"""Parsing and validation of ``KEY=VALUE`` environment files.

The parser is forgiving: lines it cannot understand are skipped. The
validator is strict and reports every problem with its line number, but
never raises for malformed content. Only a missing file is an exception.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from envswitch.core import fs
from envswitch.core.errors import EnvFileNotFoundError
from envswitch.core.logging import get_logger

logger = get_logger("envfile.parser")

UNSAFE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"password.*=.*(123456|password|admin|root)", re.IGNORECASE), "possible default password"),
    (re.compile(r"secret.*=.*(secret|test|demo)", re.IGNORECASE), "possible test secret"),
    (re.compile(r"key.*=.*(your-key|change-this|example)", re.IGNORECASE), "placeholder key value"),
)


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


@dataclass
class RequiredCheckResult:
    missing: list[str] = field(default_factory=list)
    empty: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.missing and not self.empty


def _assignments(text: str) -> Iterable[tuple[int, str]]:
    """Yield (line number, trimmed line) for lines that are not blank or comments."""
    for number, raw in enumerate(text.split("\n"), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        yield number, line


def parse_env_text(text: str) -> dict[str, str]:
    """Parse env file content into an ordered mapping.

    Splits on the first ``=`` so values may contain ``=``. Lines without
    ``=`` or with an empty key are ignored; a repeated key keeps the last
    value.
    """
    result: dict[str, str] = {}
    for _number, line in _assignments(text):
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        result[key] = value.strip()
    return result


def parse_env_file(path: Path) -> dict[str, str]:
    if not path.exists():
        raise EnvFileNotFoundError(path)
    return parse_env_text(fs.read_file(path))


def serialize_env(values: Mapping[str, str]) -> str:
    return "".join(f"{key}={value}\n" for key, value in values.items())


def validate_text(text: str) -> ValidationResult:
    result = ValidationResult()
    seen: set[str] = set()
    for number, line in _assignments(text):
        key, sep, value = line.partition("=")
        if not sep:
            result.errors.append(f"line {number} malformed: {line}")
            continue
        key = key.strip()
        if not key:
            result.errors.append(f"line {number} missing variable name: {line}")
            continue
        if key in seen:
            result.errors.append(f"line {number} duplicate variable: {key}")
        else:
            seen.add(key)
        if not value.strip():
            result.warnings.append(f"variable {key} has an empty value")
    return result


def validate_format(path: Path) -> ValidationResult:
    """Validate syntax of an env file.

    Raises:
        EnvFileNotFoundError: ``path`` does not exist.
    """
    if not path.exists():
        raise EnvFileNotFoundError(path)
    try:
        text = fs.read_file(path)
    except UnicodeDecodeError as exc:
        return ValidationResult(errors=[f"file is not valid UTF-8: {exc.reason} at byte {exc.start}"])
    return validate_text(text)


def security_check(path: Path) -> list[str]:
    """Return advisory warnings for values that look like defaults or placeholders."""
    try:
        text = fs.read_file(path)
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("security_check_failed", path=str(path), error=str(exc))
        return []

    warnings: list[str] = []
    for number, raw in enumerate(text.split("\n"), start=1):
        line = raw.strip()
        for pattern, message in UNSAFE_PATTERNS:
            if pattern.search(line):
                warnings.append(f"line {number}: {message}")
    return warnings


def check_required(path: Path, required: Iterable[str]) -> RequiredCheckResult:
    values = parse_env_file(path)
    result = RequiredCheckResult()
    for key in required:
        if key not in values:
            result.missing.append(key)
        elif values[key] == "":
            result.empty.append(key)
    return result
