"""Env file parsing, validation and diffing."""

from envswitch.envfile.diff import ChangedValue, DiffResult, diff_envs
from envswitch.envfile.parser import (
    RequiredCheckResult,
    ValidationResult,
    check_required,
    parse_env_file,
    parse_env_text,
    security_check,
    serialize_env,
    validate_format,
)

__all__ = [
    "ChangedValue",
    "DiffResult",
    "RequiredCheckResult",
    "ValidationResult",
    "check_required",
    "diff_envs",
    "parse_env_file",
    "parse_env_text",
    "security_check",
    "serialize_env",
    "validate_format",
]
