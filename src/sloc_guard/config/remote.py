"""Remote ``extends`` fetching with an on-disk TTL cache."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Callable
import time
import urllib.error
import urllib.request

from sloc_guard import console
from sloc_guard.errors import RemoteConfigError, RemoteConfigHashMismatchError
from sloc_guard.runtime.stable_encode import sha256_hex
from sloc_guard.state import atomic_write

CACHE_TTL_SECS = 3600
REQUEST_TIMEOUT_SECS = 30
_FIRST_FETCH_KEY = "remote-config-first-fetch"

Opener = Callable[..., object]


class FetchPolicy(str, Enum):
    NORMAL = "normal"
    OFFLINE = "offline"
    REFRESH = "refresh"


def is_remote_url(spec: str) -> bool:
    return spec.startswith("http://") or spec.startswith("https://")


def cache_file_for(cache_dir: Path, url: str) -> Path:
    return cache_dir / f"{sha256_hex(url)}.toml"


def _hash_matches(content: str, expected: str | None) -> bool:
    return expected is None or sha256_hex(content) == expected.strip().lower()


def _read_cached(path: Path, *, max_age: float | None) -> str | None:
    try:
        stat = path.stat()
    except FileNotFoundError:
        return None
    if max_age is not None and time.time() - stat.st_mtime > max_age:
        return None
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeError):
        return None


def _download(url: str, *, timeout: float, opener: Opener) -> str:
    request = urllib.request.Request(url, headers={"User-Agent": "sloc-guard"})
    try:
        with opener(request, timeout=timeout) as response:  # type: ignore[attr-defined]
            status = getattr(response, "status", 200)
            if status < 200 or status >= 300:
                raise RemoteConfigError(url=url, reason=f"HTTP {status}")
            body = response.read()
    except urllib.error.HTTPError as exc:
        raise RemoteConfigError(url=url, reason=f"HTTP {exc.code}") from exc
    except urllib.error.URLError as exc:
        raise RemoteConfigError(url=url, reason=str(exc.reason)) from exc
    except (TimeoutError, OSError) as exc:
        raise RemoteConfigError(url=url, reason=str(exc)) from exc
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise RemoteConfigError(url=url, reason="response is not valid UTF-8") from exc


def fetch_remote_config(
    url: str,
    *,
    cache_dir: Path | None,
    policy: FetchPolicy = FetchPolicy.NORMAL,
    expected_sha256: str | None = None,
    timeout: float = REQUEST_TIMEOUT_SECS,
    opener: Opener = urllib.request.urlopen,
) -> str:
    """Return the TOML text behind ``url`` honouring ``policy``.

    With ``expected_sha256`` the body is verified before it is cached, so a
    mismatching download never replaces a good cache entry.
    """
    if not is_remote_url(url):
        raise RemoteConfigError(url=url, reason="URL must start with http:// or https://")
    cache_file = cache_file_for(cache_dir, url) if cache_dir is not None else None

    if cache_file is not None and policy is not FetchPolicy.REFRESH:
        max_age = None if policy is FetchPolicy.OFFLINE else CACHE_TTL_SECS
        cached = _read_cached(cache_file, max_age=max_age)
        if cached is not None:
            if _hash_matches(cached, expected_sha256):
                console.debug(f"using cached remote config for {url}")
                return cached
            if policy is FetchPolicy.OFFLINE:
                raise RemoteConfigHashMismatchError(
                    url=url,
                    expected=(expected_sha256 or "").lower(),
                    actual=sha256_hex(cached),
                )
    if policy is FetchPolicy.OFFLINE:
        raise RemoteConfigError(url=url, reason="not available in the local cache (offline mode)")

    console.warn_once(
        _FIRST_FETCH_KEY,
        f"fetching remote config {url}; pin it with extends_sha256 to guard against changes",
    )
    content = _download(url, timeout=timeout, opener=opener)
    actual = sha256_hex(content)
    if expected_sha256 is not None and actual != expected_sha256.strip().lower():
        raise RemoteConfigHashMismatchError(
            url=url, expected=expected_sha256.strip().lower(), actual=actual
        )
    if cache_file is not None:
        try:
            atomic_write(
                cache_file,
                content.encode("utf-8"),
                description=f"remote config cache for {url}",
            )
        except OSError as exc:
            console.warn(f"could not cache remote config {url}: {exc}")
    return content
