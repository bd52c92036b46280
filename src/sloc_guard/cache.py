"""Incremental line-count cache.

Entries are looked up by metadata first (mtime and size) and by content
hash second. The cache is keyed to a hash of the custom-language table only,
so threshold edits keep it warm.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping
import threading

from sloc_guard import console
from sloc_guard.counter import LineStats
from sloc_guard.runtime.json_io import dump_json_pretty, load_json_object_bytes
from sloc_guard.runtime.stable_encode import sha256_hex, stable_compact_text
from sloc_guard.state import DEFAULT_LOCK_TIMEOUT_MS, WriteOutcome, atomic_write, read_locked

CACHE_VERSION = 3


@dataclass(frozen=True)
class CacheEntry:
    content_hash: str
    stats: LineStats
    mtime: int
    size: int

    def to_payload(self) -> dict[str, object]:
        return {
            "hash": self.content_hash,
            "stats": self.stats.to_payload(),
            "mtime": self.mtime,
            "size": self.size,
        }

    @classmethod
    def from_payload(cls, payload: object) -> "CacheEntry":
        if not isinstance(payload, dict):
            raise ValueError("cache entry must be an object")
        content_hash = payload.get("hash")
        mtime = payload.get("mtime")
        size = payload.get("size")
        if not isinstance(content_hash, str):
            raise ValueError("cache entry hash must be a string")
        if not isinstance(mtime, int) or not isinstance(size, int):
            raise ValueError("cache entry mtime/size must be integers")
        return cls(content_hash, LineStats.from_payload(payload.get("stats")), mtime, size)


def compute_config_hash(languages: Mapping[str, object]) -> str:
    """SHA-256 over the canonical JSON of the custom language syntax table."""
    table = {
        name: value.model_dump() if hasattr(value, "model_dump") else value
        for name, value in languages.items()
    }
    return sha256_hex(stable_compact_text(table))


class Cache:
    def __init__(self, config_hash: str, *, version: int = CACHE_VERSION) -> None:
        self.version = version
        self.config_hash = config_hash
        self.files: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self.dirty = False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cache):
            return NotImplemented
        return (
            self.version == other.version
            and self.config_hash == other.config_hash
            and self.files == other.files
        )

    def is_valid(self, config_hash: str) -> bool:
        return self.version == CACHE_VERSION and self.config_hash == config_hash

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            return self.files.get(key)

    def get_if_fresh(self, key: str, *, mtime: int, size: int) -> CacheEntry | None:
        with self._lock:
            entry = self.files.get(key)
        if entry is not None and entry.mtime == mtime and entry.size == size:
            return entry
        return None

    def get_by_hash(
        self, key: str, *, content_hash: str, mtime: int, size: int
    ) -> CacheEntry | None:
        """Match on content hash; on a hit the entry's metadata is refreshed."""
        with self._lock:
            entry = self.files.get(key)
            if entry is None or entry.content_hash != content_hash:
                return None
            refreshed = CacheEntry(entry.content_hash, entry.stats, mtime, size)
            self.files[key] = refreshed
            self.dirty = True
            return refreshed

    def set(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            self.files[key] = entry
            self.dirty = True

    def to_payload(self) -> dict[str, object]:
        with self._lock:
            files = {key: entry.to_payload() for key, entry in self.files.items()}
        return {"version": self.version, "config_hash": self.config_hash, "files": files}

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "Cache":
        version = payload.get("version")
        config_hash = payload.get("config_hash")
        files = payload.get("files", {})
        if not isinstance(version, int) or not isinstance(config_hash, str):
            raise ValueError("cache header is malformed")
        if not isinstance(files, dict):
            raise ValueError("cache files must be an object")
        cache = cls(config_hash, version=version)
        for key, raw in files.items():
            cache.files[str(key)] = CacheEntry.from_payload(raw)
        return cache


def load_cache(
    path: Path, config_hash: str, *, timeout_ms: int = DEFAULT_LOCK_TIMEOUT_MS
) -> Cache:
    """Load ``path``; anything unreadable, stale or mismatched yields an empty cache."""
    try:
        data = read_locked(path, timeout_ms=timeout_ms)
    except OSError as exc:
        console.warn(f"could not read cache {path}: {exc}")
        return Cache(config_hash)
    if data is None:
        return Cache(config_hash)
    payload = load_json_object_bytes(data)
    try:
        cache = Cache.from_payload(payload)
    except ValueError as exc:
        console.debug(f"discarding malformed cache {path}: {exc}")
        return Cache(config_hash)
    if not cache.is_valid(config_hash):
        console.debug(f"discarding cache {path}: version or config hash changed")
        return Cache(config_hash)
    return cache


def save_cache(
    cache: Cache, path: Path, *, timeout_ms: int = DEFAULT_LOCK_TIMEOUT_MS
) -> WriteOutcome:
    text = dump_json_pretty(cache.to_payload())
    try:
        outcome = atomic_write(
            path, text.encode("utf-8"), description="cache file", timeout_ms=timeout_ms
        )
    except OSError as exc:
        console.warn(f"could not save cache {path}: {exc}")
        return WriteOutcome.SKIPPED
    if outcome is WriteOutcome.WRITTEN:
        cache.dirty = False
    return outcome


def hash_content(data: bytes) -> str:
    return sha256_hex(data)


__all__ = [
    "CACHE_VERSION",
    "Cache",
    "CacheEntry",
    "compute_config_hash",
    "hash_content",
    "load_cache",
    "save_cache",
]
