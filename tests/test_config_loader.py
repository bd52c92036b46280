from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from sloc_guard.config.expires import collect_expired_rules
from sloc_guard.config.loader import ConfigLoader, discover_config_path
from sloc_guard.config.merge import merge_tables, strip_reset_markers, validate_reset_positions
from sloc_guard.config.presets import available_presets, load_preset
from sloc_guard.config.validation import parse_duration
from sloc_guard.errors import (
    CircularExtendsError,
    ConfigError,
    ExtendsTooDeepError,
    InvalidPatternError,
    SemanticError,
    TomlSyntaxError,
    TypeMismatchError,
)


def _loader(root: Path) -> ConfigLoader:
    return ConfigLoader(cwd=root, project_root=root)


def test_defaults_without_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    loaded = _loader(tmp_path).load()
    assert loaded.config.content.max_lines == 500
    assert loaded.config.content.warn_threshold == 0.8
    assert loaded.origin_text() == "<defaults>"


def test_no_config_ignores_local_file(tmp_path: Path, write_file) -> None:
    write_file(tmp_path / ".sloc-guard.toml", "[content]\nmax_lines = 10\n")
    loaded = _loader(tmp_path).load(no_config=True)
    assert loaded.config.content.max_lines == 500


def test_local_config_is_discovered(tmp_path: Path, write_file) -> None:
    path = write_file(tmp_path / ".sloc-guard.toml", 'version = "2"\n')
    assert discover_config_path(tmp_path) == path


def test_user_config_is_the_fallback(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, write_file
) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    user = write_file(tmp_path / "xdg" / "sloc-guard" / "config.toml", "")
    work = tmp_path / "work"
    work.mkdir()
    assert discover_config_path(work) == user


def test_merge_tables_recurse_and_append_arrays() -> None:
    parent = {"content": {"max_lines": 100, "extensions": ["rs"]}, "a": 1}
    child = {"content": {"extensions": ["go"]}, "a": 2}
    merged = merge_tables(parent, child)
    assert merged == {"content": {"max_lines": 100, "extensions": ["rs", "go"]}, "a": 2}


def test_reset_marker_discards_parent_array() -> None:
    merged = merge_tables({"exclude": ["vendor/**"]}, {"exclude": ["$reset", "build/**"]})
    assert merged == {"exclude": ["build/**"]}


def test_reset_marker_on_table_arrays() -> None:
    parent = {"rules": [{"pattern": "a/**", "max_lines": 1}]}
    child = {"rules": [{"pattern": "$reset"}, {"pattern": "b/**", "max_lines": 2}]}
    assert merge_tables(parent, child)["rules"] == [{"pattern": "b/**", "max_lines": 2}]


def test_reset_marker_must_come_first() -> None:
    with pytest.raises(ConfigError):
        validate_reset_positions({"scanner": {"exclude": ["a", "$reset"]}})


def test_leftover_reset_markers_are_stripped() -> None:
    assert strip_reset_markers({"x": ["$reset", "a"]}) == {"x": ["a"]}


def test_extends_with_reset(tmp_path: Path, write_file) -> None:
    write_file(tmp_path / "base.toml", '[scanner]\nexclude = ["vendor/**"]\n')
    config = write_file(
        tmp_path / ".sloc-guard.toml",
        'extends = "base.toml"\n[scanner]\nexclude = ["$reset", "build/**"]\n',
    )
    loaded = _loader(tmp_path).load(config)
    assert loaded.config.scanner.exclude == ["build/**"]
    assert [s.kind for s in loaded.sources] == ["file", "file"]


def test_extends_child_values_win(tmp_path: Path, write_file) -> None:
    write_file(tmp_path / "base.toml", "[content]\nmax_lines = 100\nwarn_threshold = 0.5\n")
    config = write_file(
        tmp_path / ".sloc-guard.toml", 'extends = "base.toml"\n[content]\nmax_lines = 200\n'
    )
    content = _loader(tmp_path).load(config).config.content
    assert content.max_lines == 200
    assert content.warn_threshold == 0.5


def test_no_extends_skips_parent(tmp_path: Path, write_file) -> None:
    write_file(tmp_path / "base.toml", "[content]\nmax_lines = 100\n")
    config = write_file(tmp_path / ".sloc-guard.toml", 'extends = "base.toml"\n')
    loaded = _loader(tmp_path).load(config, no_extends=True)
    assert loaded.config.content.max_lines == 500


def test_extends_cycle_is_detected(tmp_path: Path, write_file) -> None:
    write_file(tmp_path / "a.toml", 'extends = "b.toml"\n')
    write_file(tmp_path / "b.toml", 'extends = "a.toml"\n')
    with pytest.raises(CircularExtendsError) as info:
        _loader(tmp_path).load(tmp_path / "a.toml")
    assert info.value.chain[0].endswith("a.toml")
    assert info.value.chain[-1].endswith("a.toml")


def test_extends_depth_is_bounded(tmp_path: Path, write_file) -> None:
    for index in range(12):
        write_file(tmp_path / f"c{index}.toml", f'extends = "c{index + 1}.toml"\n')
    write_file(tmp_path / "c12.toml", "")
    with pytest.raises(ExtendsTooDeepError):
        _loader(tmp_path).load(tmp_path / "c0.toml")


def test_extends_preset(tmp_path: Path, write_file) -> None:
    config = write_file(
        tmp_path / ".sloc-guard.toml",
        'extends = "preset:rust-strict"\n[content]\nmax_lines = 700\n',
    )
    loaded = _loader(tmp_path).load(config)
    assert loaded.config.content.max_lines == 700
    assert loaded.config.content.extensions == ["rs"]
    assert str(loaded.sources[0]) == "preset:rust-strict"


def test_unknown_preset_is_a_config_error(tmp_path: Path, write_file) -> None:
    config = write_file(tmp_path / ".sloc-guard.toml", 'extends = "preset:nope"\n')
    with pytest.raises(ConfigError, match="Unknown preset"):
        _loader(tmp_path).load(config)


@pytest.mark.parametrize("name", available_presets())
def test_every_preset_builds(tmp_path: Path, name: str, write_file) -> None:
    assert load_preset(name)
    config = write_file(tmp_path / ".sloc-guard.toml", f'extends = "preset:{name}"\n')
    _loader(tmp_path).load(config)


def test_syntax_error_reports_location(tmp_path: Path, write_file) -> None:
    config = write_file(tmp_path / ".sloc-guard.toml", "[content]\nmax_lines = = 3\n")
    with pytest.raises(TomlSyntaxError) as info:
        _loader(tmp_path).load(config)
    assert info.value.line == 2


def test_wrong_type_is_reported(tmp_path: Path, write_file) -> None:
    config = write_file(tmp_path / ".sloc-guard.toml", '[content]\nmax_lines = "many"\n')
    with pytest.raises(TypeMismatchError) as info:
        _loader(tmp_path).load(config)
    assert info.value.field == "content.max_lines"


def test_unknown_field_is_rejected(tmp_path: Path, write_file) -> None:
    config = write_file(tmp_path / ".sloc-guard.toml", "[content]\nmax_line = 3\n")
    with pytest.raises(SemanticError, match="unknown field"):
        _loader(tmp_path).load(config)


def test_unsupported_version(tmp_path: Path, write_file) -> None:
    config = write_file(tmp_path / ".sloc-guard.toml", 'version = "1"\n')
    with pytest.raises(ConfigError, match="Unsupported config version"):
        _loader(tmp_path).load(config)


@pytest.mark.parametrize(
    "text",
    [
        "[content]\nwarn_threshold = 1.5\n",
        "[content]\nmax_lines = 100\nwarn_at = 100\n",
        "[structure]\nmax_files = -2\n",
        '[[structure.overrides]]\npath = "src"\n',
        '[structure]\nallow_extensions = ["rs"]\ndeny_files = ["*.bak"]\n',
        '[[structure.rules]]\nscope = "src/**"\nrequire_sibling = "{stem}.test.ts"\n',
        '[stats.report]\ntrend_since = "soon"\n',
    ],
)
def test_semantic_validation_errors(tmp_path: Path, text: str, write_file) -> None:
    config = write_file(tmp_path / ".sloc-guard.toml", text)
    with pytest.raises(SemanticError):
        _loader(tmp_path).load(config)


def test_invalid_glob_in_rules(tmp_path: Path, write_file) -> None:
    config = write_file(
        tmp_path / ".sloc-guard.toml",
        '[[content.rules]]\npattern = "src/[ab"\nmax_lines = 10\n',
    )
    with pytest.raises(InvalidPatternError):
        _loader(tmp_path).load(config)


def test_expired_rules_are_collected(tmp_path: Path, write_file) -> None:
    config = write_file(
        tmp_path / ".sloc-guard.toml",
        "[[content.rules]]\n"
        'pattern = "legacy/**"\n'
        "max_lines = 900\n"
        "expires = 2024-01-01\n"
        'reason = "migration"\n',
    )
    loaded = _loader(tmp_path).load(config)
    expired = collect_expired_rules(loaded.config, today=date(2024, 6, 1))
    assert len(expired) == 1
    assert "expired on 2024-01-01" in expired[0].describe()
    assert collect_expired_rules(loaded.config, today=date(2024, 1, 1)) == []


def test_parse_duration() -> None:
    assert parse_duration("7d").days == 7
    assert parse_duration("2w").days == 14
    with pytest.raises(ValueError):
        parse_duration("7 days")
