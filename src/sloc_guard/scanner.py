"""Directory walk with ``.gitignore`` support and per-directory counts.

Paths are reported relative to ``base`` (the directory the command runs
from) with forward slashes. Directory depth is the number of components of
that relative path, so ``.`` is depth 0 and ``src/a`` is depth 2.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Iterable
import os

from pathspec import PathSpec

from sloc_guard import console
from sloc_guard.checker.structure import ROOT_DIR, DirStats
from sloc_guard.errors import FileAccessError
from sloc_guard.globmatch import GlobSet, normalize_path
from sloc_guard.state import LOCAL_STATE_DIR

ALWAYS_SKIPPED_DIRS = frozenset({".git", LOCAL_STATE_DIR})
GITIGNORE_FILE = ".gitignore"


@dataclass(frozen=True)
class ScannedFile:
    path: Path
    key: str

    @property
    def extension(self) -> str:
        suffix = PurePosixPath(self.key).suffix
        return suffix[1:].lower() if suffix else ""


@dataclass
class ScanResult:
    files: list[ScannedFile] = field(default_factory=list)
    dirs: list[DirStats] = field(default_factory=list)


def relative_key(path: Path, base: Path) -> str:
    try:
        rel = path.resolve().relative_to(base.resolve())
    except ValueError:
        return normalize_path(path.resolve().as_posix())
    text = rel.as_posix()
    return ROOT_DIR if text in ("", ".") else text


def path_depth(key: str) -> int:
    if key in ("", ROOT_DIR):
        return 0
    return len(PurePosixPath(key).parts)


@dataclass(frozen=True)
class _IgnoreLayer:
    prefix: str
    spec: PathSpec

    def ignores(self, key: str, *, is_dir: bool) -> bool:
        if self.prefix == ROOT_DIR:
            rel = key
        elif key.startswith(self.prefix + "/"):
            rel = key[len(self.prefix) + 1 :]
        else:
            return False
        return self.spec.match_file(rel + "/" if is_dir else rel)


def _load_gitignore(directory: Path, key: str) -> _IgnoreLayer | None:
    gitignore = directory / GITIGNORE_FILE
    if not gitignore.is_file():
        return None
    try:
        lines = gitignore.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError as exc:
        console.warn(f"could not read {gitignore}: {exc}")
        return None
    return _IgnoreLayer(key, PathSpec.from_lines("gitignore", lines))


class Scanner:
    def __init__(
        self,
        *,
        base: Path,
        extensions: Iterable[str],
        exclude: Iterable[str] = (),
        gitignore: bool = True,
    ) -> None:
        self.base = base
        self.extensions = frozenset(ext.lstrip(".").lower() for ext in extensions)
        self.exclude = GlobSet(list(exclude))
        self.gitignore = gitignore

    def wants(self, key: str) -> bool:
        suffix = PurePosixPath(key).suffix
        return bool(suffix) and suffix[1:].lower() in self.extensions

    def _ignored(self, key: str, layers: list[_IgnoreLayer], *, is_dir: bool) -> bool:
        if is_dir and self.exclude.matches_dir(key):
            return True
        if not is_dir and self.exclude.is_match(key):
            return True
        return any(layer.ignores(key, is_dir=is_dir) for layer in layers)

    def _root_layers(self, root: Path) -> list[_IgnoreLayer]:
        """``.gitignore`` files between ``base`` and a nested scan root."""
        if not self.gitignore:
            return []
        layers: list[_IgnoreLayer] = []
        try:
            rel = root.resolve().relative_to(self.base.resolve())
        except ValueError:
            return layers
        if not rel.parts:
            return layers
        chain = [self.base]
        for part in rel.parts[:-1]:
            chain.append(chain[-1] / part)
        for directory in chain:
            layer = _load_gitignore(directory, relative_key(directory, self.base))
            if layer is not None:
                layers.append(layer)
        return layers

    def scan(self, roots: Iterable[Path]) -> ScanResult:
        result = ScanResult()
        seen_files: set[str] = set()
        seen_dirs: set[str] = set()
        for root in roots:
            if not root.exists():
                raise FileAccessError(
                    path=root,
                    operation="scan",
                    cause=FileNotFoundError(2, "No such file or directory", str(root)),
                )
            if root.is_file():
                self._add_file(root, result, seen_files)
                continue
            self._walk(root, result, seen_files, seen_dirs)
        result.files.sort(key=lambda f: f.key)
        result.dirs.sort(key=lambda d: d.path)
        return result

    def scan_files(self, paths: Iterable[Path]) -> ScanResult:
        """Explicit file list: no walk and no directory statistics."""
        result = ScanResult()
        seen: set[str] = set()
        for path in paths:
            if not path.is_file():
                console.warn(f"skipping {path}: not a file")
                continue
            self._add_file(path, result, seen)
        result.files.sort(key=lambda f: f.key)
        return result

    def _add_file(self, path: Path, result: ScanResult, seen: set[str]) -> None:
        key = relative_key(path, self.base)
        if key in seen or not self.wants(key) or self.exclude.is_match(key):
            return
        seen.add(key)
        result.files.append(ScannedFile(path, key))

    def _walk(
        self,
        root: Path,
        result: ScanResult,
        seen_files: set[str],
        seen_dirs: set[str],
    ) -> None:
        base_layers = self._root_layers(root)
        layer_stack: dict[str, list[_IgnoreLayer]] = {}

        def on_error(exc: OSError) -> None:
            if Path(exc.filename or "") == root:
                raise FileAccessError(path=root, operation="scan", cause=exc) from exc
            console.warn(f"skipping {exc.filename}: {exc.strerror}")

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            directory = Path(dirpath)
            key = relative_key(directory, self.base)
            parent_key = relative_key(directory.parent, self.base)
            layers = layer_stack.get(parent_key, base_layers) if directory != root else base_layers
            if self.gitignore:
                own = _load_gitignore(directory, key)
                if own is not None:
                    layers = layers + [own]
            layer_stack[key] = layers

            kept_dirs: list[str] = []
            for name in sorted(dirnames):
                child = name if key == ROOT_DIR else f"{key}/{name}"
                if name in ALWAYS_SKIPPED_DIRS or self._ignored(child, layers, is_dir=True):
                    continue
                kept_dirs.append(name)
            dirnames[:] = kept_dirs

            kept_files: list[str] = []
            for name in sorted(filenames):
                child = name if key == ROOT_DIR else f"{key}/{name}"
                if self._ignored(child, layers, is_dir=False):
                    continue
                kept_files.append(name)
                if self.wants(child) and child not in seen_files:
                    seen_files.add(child)
                    result.files.append(ScannedFile(directory / name, child))

            if key not in seen_dirs:
                seen_dirs.add(key)
                result.dirs.append(
                    DirStats(path=key, depth=path_depth(key), files=kept_files, subdirs=kept_dirs)
                )
