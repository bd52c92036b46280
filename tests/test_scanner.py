from __future__ import annotations

from pathlib import Path

import pytest

from sloc_guard.errors import FileAccessError
from sloc_guard.scanner import Scanner, path_depth, relative_key


@pytest.fixture
def tree(tmp_path: Path, write_file) -> Path:
    write_file(tmp_path / "main.rs", "fn main() {}\n")
    write_file(tmp_path / "README.md", "# readme\n")
    write_file(tmp_path / "src" / "lib.rs", "pub fn f() {}\n")
    write_file(tmp_path / "src" / "gen" / "out.rs", "fn g() {}\n")
    write_file(tmp_path / "vendor" / "dep.rs", "fn d() {}\n")
    write_file(tmp_path / "target" / "build.rs", "fn b() {}\n")
    write_file(tmp_path / ".git" / "HEAD", "ref: refs/heads/main\n")
    write_file(tmp_path / ".gitignore", "target/\n")
    write_file(tmp_path / "src" / ".gitignore", "gen/\n")
    return tmp_path


def _keys(scanner: Scanner, roots: list[Path]) -> list[str]:
    return [f.key for f in scanner.scan(roots).files]


def test_gitignore_layers_and_always_skipped_dirs(tree: Path) -> None:
    scanner = Scanner(base=tree, extensions=["rs"])
    assert _keys(scanner, [tree]) == ["main.rs", "src/lib.rs", "vendor/dep.rs"]


def test_gitignore_can_be_disabled(tree: Path) -> None:
    scanner = Scanner(base=tree, extensions=["rs"], gitignore=False)
    assert "target/build.rs" in _keys(scanner, [tree])
    assert "src/gen/out.rs" in _keys(scanner, [tree])


def test_exclude_globs_prune_directories(tree: Path) -> None:
    scanner = Scanner(base=tree, extensions=["rs"], exclude=["vendor/**"])
    result = scanner.scan([tree])
    assert [f.key for f in result.files] == ["main.rs", "src/lib.rs"]
    assert "vendor" not in [d.path for d in result.dirs]


def test_nested_root_still_honours_parent_gitignore(tree: Path) -> None:
    scanner = Scanner(base=tree, extensions=["rs"])
    assert _keys(scanner, [tree / "src"]) == ["src/lib.rs"]


def test_directory_stats_count_every_kept_entry(tree: Path) -> None:
    scanner = Scanner(base=tree, extensions=["rs"])
    dirs = {d.path: d for d in scanner.scan([tree]).dirs}
    assert set(dirs) == {".", "src", "vendor"}
    root = dirs["."]
    assert root.depth == 0
    assert root.files == [".gitignore", "README.md", "main.rs"]
    assert root.subdirs == ["src", "vendor"]
    assert dirs["src"].subdirs == []


def test_explicit_file_roots_and_missing_paths(tree: Path) -> None:
    scanner = Scanner(base=tree, extensions=["rs"])
    assert _keys(scanner, [tree / "main.rs", tree / "README.md"]) == ["main.rs"]
    with pytest.raises(FileAccessError):
        scanner.scan([tree / "nope"])


def test_scan_files_has_no_directory_stats(tree: Path) -> None:
    scanner = Scanner(base=tree, extensions=["rs"])
    result = scanner.scan_files([tree / "src" / "lib.rs", tree / "missing.rs"])
    assert [f.key for f in result.files] == ["src/lib.rs"]
    assert result.dirs == []


def test_relative_key_and_depth(tmp_path: Path) -> None:
    assert relative_key(tmp_path, tmp_path) == "."
    assert relative_key(tmp_path / "a" / "b.rs", tmp_path) == "a/b.rs"
    assert path_depth(".") == 0
    assert path_depth("src/a") == 2
