"""Filesystem helpers used by the environment and backup managers."""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from envswitch.core.errors import EnvFileNotFoundError

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


@dataclass(frozen=True)
class FileStat:
    size: int
    mtime: datetime  # UTC


def exists(path: Path) -> bool:
    return path.exists()


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def copy(src: Path, dst: Path) -> None:
    """Copy file contents only, creating the destination directory.

    The destination gets a fresh mtime, which is what backup listings use as
    the creation time.
    """
    if not src.exists():
        raise EnvFileNotFoundError(src, what="Source file")
    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(src, dst)


def read_file(path: Path) -> str:
    if not path.exists():
        raise EnvFileNotFoundError(path, what="File")
    return path.read_text(encoding="utf-8")


def write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def delete_file(path: Path) -> None:
    path.unlink()


def stat(path: Path) -> FileStat:
    st = path.stat()
    return FileStat(size=st.st_size, mtime=datetime.fromtimestamp(st.st_mtime, tz=UTC))


def list_files(directory: Path, pattern: str | None = None) -> list[str]:
    """Return sorted file names in ``directory``, optionally filtered by a regex."""
    names = sorted(p.name for p in directory.iterdir() if p.is_file())
    if pattern is None:
        return names
    regex = re.compile(pattern)
    return [name for name in names if regex.search(name)]


def generate_timestamp(now: datetime | None = None) -> str:
    """Filesystem-safe UTC timestamp, e.g. ``20260102_030405``."""
    now_dt = now or datetime.now(tz=UTC)
    return now_dt.astimezone(UTC).strftime(TIMESTAMP_FORMAT)
