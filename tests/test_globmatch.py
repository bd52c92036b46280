from __future__ import annotations

import pytest

from sloc_guard.errors import InvalidPatternError
from sloc_guard.globmatch import GlobSet, compile_glob, literal_prefix, normalize_path


@pytest.mark.parametrize(
    ("pattern", "path", "expected"),
    [
        ("src/**", "src/a/b.rs", True),
        ("**/*.rs", "main.rs", True),
        ("**/*.rs", "src/deep/main.rs", True),
        ("*.rs", "src/main.rs", True),
        ("src/*.rs", "src/a/main.rs", True),
        ("src/?.rs", "src/a.rs", True),
        ("src/[ab].rs", "src/c.rs", False),
        ("src/[!ab].rs", "src/c.rs", True),
        ("src/*.{rs,go}", "src/x.go", True),
        ("src/**", "lib/x.rs", False),
    ],
)
def test_glob_semantics(pattern: str, path: str, expected: bool) -> None:
    assert compile_glob(pattern).matches(path) is expected


def test_normalize_path_strips_dot_slash_and_backslashes() -> None:
    assert normalize_path("./src\\a\\") == "src/a"
    assert normalize_path(".") == "."


def test_literal_prefix() -> None:
    assert literal_prefix("src/components/**") == "src/components"
    assert literal_prefix("**/*.rs") == ""


def test_globset_matching_reports_declaration_order() -> None:
    globs = GlobSet(["src/**", "lib/**", "**/*.rs"])
    assert globs.matching("src/x.rs") == [0, 2]
    assert not globs.is_match("docs/readme.md")


def test_matches_dir_treats_recursive_pattern_as_covering_the_dir() -> None:
    globs = GlobSet(["vendor/**"])
    assert globs.matches_dir("vendor")
    assert globs.matches_dir("vendor/nested")
    assert not globs.matches_dir("vendored")


@pytest.mark.parametrize("pattern", ["src/[ab", "src/{a,b", "src/a}"])
def test_invalid_patterns_raise(pattern: str) -> None:
    with pytest.raises(InvalidPatternError):
        compile_glob(pattern)
