"""Per-project state directory, advisory file locks and atomic writes."""

from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Iterator
import os
import sys
import time

from sloc_guard import console

STATE_DIR_NAME = "sloc-guard"
LOCAL_STATE_DIR = ".sloc-guard"
CONFIG_FILE_NAME = ".sloc-guard.toml"
CACHE_FILE = "cache.json"
BASELINE_FILE = "baseline.json"
HISTORY_FILE = "history.json"
REMOTE_CONFIG_DIR = "remote-configs"

DEFAULT_LOCK_TIMEOUT_MS = 5000
LOCK_POLL_INTERVAL_MS = 50


def discover_project_root(start: Path) -> Path:
    """Nearest ancestor holding ``.git`` or a config file; ``start`` otherwise."""
    start = start.resolve()
    for candidate in (start, *start.parents):
        if (candidate / ".git").exists() or (candidate / CONFIG_FILE_NAME).is_file():
            return candidate
    return start


def state_dir(project_root: Path) -> Path:
    git_dir = project_root / ".git"
    if git_dir.is_dir():
        return git_dir / STATE_DIR_NAME
    return project_root / LOCAL_STATE_DIR


def cache_path(project_root: Path) -> Path:
    return state_dir(project_root) / CACHE_FILE


def baseline_path(project_root: Path) -> Path:
    return state_dir(project_root) / BASELINE_FILE


def history_path(project_root: Path) -> Path:
    return state_dir(project_root) / HISTORY_FILE


def remote_cache_dir(project_root: Path) -> Path:
    return state_dir(project_root) / REMOTE_CONFIG_DIR


class LockMode(str, Enum):
    SHARED = "shared"
    EXCLUSIVE = "exclusive"


if sys.platform == "win32":
    import msvcrt

    def _try_lock(handle: BinaryIO, mode: LockMode) -> bool:
        # msvcrt has no shared locks; both modes lock the first byte.
        try:
            handle.seek(0)
            msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)
        except OSError:
            return False
        return True

    def _unlock(handle: BinaryIO) -> None:
        try:
            handle.seek(0)
            msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
        except OSError:
            pass

else:
    import fcntl

    def _try_lock(handle: BinaryIO, mode: LockMode) -> bool:
        flag = fcntl.LOCK_SH if mode is LockMode.SHARED else fcntl.LOCK_EX
        try:
            fcntl.flock(handle.fileno(), flag | fcntl.LOCK_NB)
        except (BlockingIOError, PermissionError):
            return False
        return True

    def _unlock(handle: BinaryIO) -> None:
        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


def try_lock_with_timeout(handle: BinaryIO, mode: LockMode, timeout_ms: int) -> bool:
    deadline = time.monotonic() + max(timeout_ms, 0) / 1000.0
    while True:
        if _try_lock(handle, mode):
            return True
        if time.monotonic() >= deadline:
            return False
        time.sleep(LOCK_POLL_INTERVAL_MS / 1000.0)


@contextmanager
def locked(handle: BinaryIO, mode: LockMode, timeout_ms: int) -> Iterator[bool]:
    """Yield whether the lock was acquired; release it on exit if it was."""
    acquired = try_lock_with_timeout(handle, mode, timeout_ms)
    try:
        yield acquired
    finally:
        if acquired:
            _unlock(handle)


def read_locked(path: Path, *, timeout_ms: int = DEFAULT_LOCK_TIMEOUT_MS) -> bytes | None:
    """Read ``path`` under a shared lock; falls back to an unlocked read on timeout."""
    try:
        handle = path.open("rb")
    except FileNotFoundError:
        return None
    with handle:
        with locked(handle, LockMode.SHARED, timeout_ms) as acquired:
            if not acquired:
                console.debug(f"reading {path} without a lock")
            return handle.read()


class WriteOutcome(str, Enum):
    WRITTEN = "written"
    SKIPPED = "skipped"


def atomic_write(
    path: Path,
    data: bytes,
    *,
    description: str,
    timeout_ms: int = DEFAULT_LOCK_TIMEOUT_MS,
) -> WriteOutcome:
    """Write via temp file + rename while holding an exclusive lock on ``path``.

    Raises ``OSError`` for I/O failures. A lock timeout is not an error: the
    write is skipped with a warning and the existing file is left untouched.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp.{os.getpid()}")
    with tmp_path.open("wb") as tmp:
        tmp.write(data)
        tmp.flush()
        os.fsync(tmp.fileno())
    try:
        with path.open("ab") as target:
            with locked(target, LockMode.EXCLUSIVE, timeout_ms) as acquired:
                if not acquired:
                    console.warn(f"Failed to acquire write lock on {description}")
                    return WriteOutcome.SKIPPED
                os.replace(tmp_path, path)
                return WriteOutcome.WRITTEN
    finally:
        if tmp_path.exists():
            tmp_path.unlink()
