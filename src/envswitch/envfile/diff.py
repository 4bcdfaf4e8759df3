"""Key-level comparison of two parsed environments."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ChangedValue:
    from_value: str
    to_value: str


@dataclass
class DiffResult:
    """Partition of the union of keys of two environments.

    ``added`` holds keys only in the second environment, ``removed`` keys
    only in the first. Every key lands in exactly one of the four maps.
    """

    added: dict[str, str] = field(default_factory=dict)
    removed: dict[str, str] = field(default_factory=dict)
    changed: dict[str, ChangedValue] = field(default_factory=dict)
    unchanged: dict[str, str] = field(default_factory=dict)

    @property
    def total_differences(self) -> int:
        return len(self.added) + len(self.removed) + len(self.changed)

    @property
    def has_differences(self) -> bool:
        return self.total_differences > 0


def diff_envs(vars1: Mapping[str, str], vars2: Mapping[str, str]) -> DiffResult:
    result = DiffResult()
    for key in set(vars1) | set(vars2):
        if key not in vars1:
            result.added[key] = vars2[key]
        elif key not in vars2:
            result.removed[key] = vars1[key]
        elif vars1[key] != vars2[key]:
            result.changed[key] = ChangedValue(from_value=vars1[key], to_value=vars2[key])
        else:
            result.unchanged[key] = vars1[key]
    return result
