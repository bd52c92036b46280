from __future__ import annotations

from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Iterator
import threading

import pytest

from sloc_guard.config.loader import ConfigLoader
from sloc_guard.config.remote import FetchPolicy, cache_file_for, fetch_remote_config
from sloc_guard.errors import (
    ExtendsResolutionError,
    RemoteConfigError,
    RemoteConfigHashMismatchError,
)
from sloc_guard.runtime.stable_encode import sha256_hex

PARENT_TOML = '[content]\nmax_lines = 123\n[scanner]\nexclude = ["vendor/**"]\n'


class _Server:
    def __init__(self) -> None:
        self.bodies: dict[str, str] = {}
        self.hits: list[str] = []
        outer = self

        class Handler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:  # noqa: N802
                outer.hits.append(self.path)
                body = outer.bodies.get(self.path)
                if body is None:
                    self.send_response(404)
                    self.end_headers()
                    return
                data = body.encode("utf-8")
                self.send_response(200)
                self.send_header("Content-Type", "application/toml")
                self.send_header("Content-Length", str(len(data)))
                self.end_headers()
                self.wfile.write(data)

            def log_message(self, format: str, *args: object) -> None:
                return

        self.httpd = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
        self.thread = threading.Thread(target=self.httpd.serve_forever, daemon=True)

    def url(self, path: str) -> str:
        host, port = self.httpd.server_address[:2]
        return f"http://{host}:{port}{path}"


@pytest.fixture
def server(monkeypatch: pytest.MonkeyPatch) -> Iterator[_Server]:
    for name in ("http_proxy", "HTTP_PROXY", "https_proxy", "HTTPS_PROXY", "all_proxy", "ALL_PROXY"):
        monkeypatch.delenv(name, raising=False)
    srv = _Server()
    srv.thread.start()
    try:
        yield srv
    finally:
        srv.httpd.shutdown()
        srv.httpd.server_close()


def test_fetch_caches_body(tmp_path: Path, server: _Server) -> None:
    server.bodies["/base.toml"] = PARENT_TOML
    url = server.url("/base.toml")
    assert fetch_remote_config(url, cache_dir=tmp_path) == PARENT_TOML
    assert cache_file_for(tmp_path, url).read_text(encoding="utf-8") == PARENT_TOML
    assert fetch_remote_config(url, cache_dir=tmp_path) == PARENT_TOML
    assert server.hits == ["/base.toml"]


def test_refresh_policy_bypasses_cache(tmp_path: Path, server: _Server) -> None:
    server.bodies["/base.toml"] = PARENT_TOML
    url = server.url("/base.toml")
    fetch_remote_config(url, cache_dir=tmp_path)
    fetch_remote_config(url, cache_dir=tmp_path, policy=FetchPolicy.REFRESH)
    assert len(server.hits) == 2


def test_offline_policy_uses_only_cache(tmp_path: Path) -> None:
    url = "http://127.0.0.1:9/never.toml"
    with pytest.raises(RemoteConfigError) as info:
        fetch_remote_config(url, cache_dir=tmp_path, policy=FetchPolicy.OFFLINE)
    assert "offline" in info.value.reason
    cache_file = cache_file_for(tmp_path, url)
    cache_file.write_text(PARENT_TOML, encoding="utf-8")
    assert fetch_remote_config(url, cache_dir=tmp_path, policy=FetchPolicy.OFFLINE) == PARENT_TOML


def test_hash_mismatch_is_not_cached(tmp_path: Path, server: _Server) -> None:
    server.bodies["/base.toml"] = PARENT_TOML
    url = server.url("/base.toml")
    with pytest.raises(RemoteConfigHashMismatchError) as info:
        fetch_remote_config(url, cache_dir=tmp_path, expected_sha256="deadbeef")
    assert info.value.actual == sha256_hex(PARENT_TOML)
    assert not cache_file_for(tmp_path, url).exists()


def test_http_error_status(tmp_path: Path, server: _Server) -> None:
    with pytest.raises(RemoteConfigError) as info:
        fetch_remote_config(server.url("/missing.toml"), cache_dir=tmp_path)
    assert info.value.reason == "HTTP 404"
    assert "  HTTP 404" in info.value.render()


def test_loader_merges_remote_parent(tmp_path: Path, server: _Server, write_file) -> None:
    server.bodies["/base.toml"] = PARENT_TOML
    url = server.url("/base.toml")
    config = write_file(
        tmp_path / ".sloc-guard.toml",
        f'extends = "{url}"\nextends_sha256 = "{sha256_hex(PARENT_TOML)}"\n'
        '[scanner]\nexclude = ["build/**"]\n',
    )
    loaded = ConfigLoader(cwd=tmp_path, project_root=tmp_path).load(config)
    assert loaded.config.content.max_lines == 123
    assert loaded.config.scanner.exclude == ["vendor/**", "build/**"]
    assert [s.kind for s in loaded.sources] == ["remote", "file"]


def test_loader_rejects_mismatched_remote(tmp_path: Path, server: _Server, write_file) -> None:
    server.bodies["/base.toml"] = PARENT_TOML
    url = server.url("/base.toml")
    config = write_file(
        tmp_path / ".sloc-guard.toml",
        f'extends = "{url}"\nextends_sha256 = "{"0" * 64}"\n',
    )
    with pytest.raises(RemoteConfigHashMismatchError):
        ConfigLoader(cwd=tmp_path, project_root=tmp_path).load(config)
    assert not (tmp_path / ".sloc-guard" / "remote-configs").exists()


def test_remote_config_cannot_extend_relative_path(
    tmp_path: Path, server: _Server, write_file
) -> None:
    server.bodies["/child.toml"] = 'extends = "sibling.toml"\n'
    config = write_file(
        tmp_path / ".sloc-guard.toml", f'extends = "{server.url("/child.toml")}"\n'
    )
    with pytest.raises(ExtendsResolutionError):
        ConfigLoader(cwd=tmp_path, project_root=tmp_path).load(config)
