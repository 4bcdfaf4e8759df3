from __future__ import annotations

from envswitch.envfile.diff import ChangedValue, diff_envs

LOCAL = {"APP_ENV": "local", "DEBUG": "true", "DB_HOST": "localhost", "MOCK_AUTH": "true"}
STAGING = {"APP_ENV": "staging", "DEBUG": "true", "DB_HOST": "db.stg", "SENTRY_DSN": "https://x"}


def test_diff_classifies_each_key() -> None:
    result = diff_envs(LOCAL, STAGING)

    assert result.added == {"SENTRY_DSN": "https://x"}
    assert result.removed == {"MOCK_AUTH": "true"}
    assert result.changed == {
        "APP_ENV": ChangedValue(from_value="local", to_value="staging"),
        "DB_HOST": ChangedValue(from_value="localhost", to_value="db.stg"),
    }
    assert result.unchanged == {"DEBUG": "true"}
    assert result.total_differences == 4
    assert result.has_differences is True


def test_diff_partition_is_complete_and_disjoint() -> None:
    pairs = [
        (LOCAL, STAGING),
        ({}, STAGING),
        (LOCAL, {}),
        ({}, {}),
        (LOCAL, dict(LOCAL)),
        ({"A": "", "B": "1"}, {"A": "x", "C": "2"}),
    ]
    for env_a, env_b in pairs:
        result = diff_envs(env_a, env_b)
        parts = [set(result.added), set(result.removed), set(result.changed), set(result.unchanged)]
        union = set(env_a) | set(env_b)

        assert sum(len(p) for p in parts) == len(union)
        assert set().union(*parts) == union
        for i, left in enumerate(parts):
            for right in parts[i + 1 :]:
                assert not left & right


def test_diff_is_symmetric() -> None:
    forward = diff_envs(LOCAL, STAGING)
    backward = diff_envs(STAGING, LOCAL)

    assert forward.added == backward.removed
    assert forward.removed == backward.added
    assert forward.unchanged == backward.unchanged
    assert set(forward.changed) == set(backward.changed)
    for key, change in forward.changed.items():
        assert backward.changed[key] == ChangedValue(from_value=change.to_value, to_value=change.from_value)


def test_identical_envs_have_no_differences() -> None:
    result = diff_envs(LOCAL, dict(LOCAL))
    assert result.has_differences is False
    assert result.unchanged == LOCAL
