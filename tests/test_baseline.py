from __future__ import annotations

from pathlib import Path
import json

import pytest

from sloc_guard.baseline import (
    Baseline,
    ContentEntry,
    StructureCountKind,
    StructureEntry,
    UpdateMode,
    apply_baseline,
    load_baseline,
    save_baseline,
    stale_entries,
    tighten,
    update_baseline,
)
from sloc_guard.checker.result import Failed, Grandfathered, Passed, ViolationKind
from sloc_guard.counter import LineStats
from sloc_guard.errors import ConfigError


def _failed(path: str, code: int, limit: int = 10) -> Failed:
    stats = LineStats(total=code, code=code)
    return Failed(path=path, stats=stats, raw_stats=stats, limit=limit)


def _structure_failed(path: str, count: int, kind: ViolationKind = ViolationKind.FILE_COUNT) -> Failed:
    stats = LineStats(total=count, code=count)
    return Failed(path=path, stats=stats, raw_stats=stats, limit=5, violation_category=kind)


def _passed(path: str) -> Passed:
    stats = LineStats(total=1, code=1)
    return Passed(path=path, stats=stats, raw_stats=stats, limit=10)


def test_content_entry_grandfathers_only_on_hash_match() -> None:
    baseline = Baseline()
    baseline.set_content("a.rs", 20, "h1")
    [same] = apply_baseline([_failed("a.rs", 20)], baseline, {"a.rs": "h1"})
    [changed] = apply_baseline([_failed("a.rs", 20)], baseline, {"a.rs": "h2"})
    assert isinstance(same, Grandfathered)
    assert isinstance(changed, Failed)


def test_structure_entry_grandfathers_until_count_grows() -> None:
    baseline = Baseline()
    baseline.set_structure("src", StructureCountKind.FILES, 8)
    [kept] = apply_baseline([_structure_failed("src", 8)], baseline, {})
    [grown] = apply_baseline([_structure_failed("src", 9)], baseline, {})
    [other_kind] = apply_baseline(
        [_structure_failed("src", 3, ViolationKind.DIR_COUNT)], baseline, {}
    )
    assert isinstance(kept, Grandfathered)
    assert isinstance(grown, Failed)
    assert isinstance(other_kind, Failed)


def test_update_all_records_every_failure() -> None:
    results = [_failed("a.rs", 20), _structure_failed("src", 7), _passed("b.rs")]
    baseline = update_baseline(results, UpdateMode.ALL, {"a.rs": "h1", "b.rs": "h2"})
    assert baseline.files == {
        "a.rs": ContentEntry(20, "h1"),
        "src": StructureEntry(StructureCountKind.FILES, 7),
    }


def test_update_content_keeps_existing_structure_entries() -> None:
    existing = Baseline()
    existing.set_structure("lib", StructureCountKind.DIRS, 4)
    existing.set_content("old.rs", 30, "h0")
    results = [_failed("a.rs", 20), _structure_failed("src", 7)]
    baseline = update_baseline(results, UpdateMode.CONTENT, {"a.rs": "h1"}, existing)
    assert set(baseline.files) == {"lib", "a.rs"}


def test_update_new_only_adds_missing_paths() -> None:
    existing = Baseline()
    existing.set_content("a.rs", 15, "h0")
    results = [_failed("a.rs", 20), _failed("b.rs", 12)]
    baseline = update_baseline(results, UpdateMode.NEW, {"a.rs": "h1", "b.rs": "h2"}, existing)
    assert baseline.get("a.rs") == ContentEntry(15, "h0")
    assert baseline.get("b.rs") == ContentEntry(12, "h2")


def test_stale_entries_and_tighten() -> None:
    baseline = Baseline()
    baseline.set_content("a.rs", 20, "h1")
    baseline.set_content("gone.rs", 20, "h1")
    results = [_failed("a.rs", 20).grandfather()]
    stale = stale_entries(results, baseline)
    assert stale == ["gone.rs"]
    tightened = tighten(baseline, stale)
    assert "gone.rs" not in tightened
    assert "gone.rs" in baseline


def test_save_and_load(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "baseline.json"
    baseline = Baseline()
    baseline.set_content("a.rs", 20, "h1")
    baseline.set_structure("src", StructureCountKind.DIRS, 3)
    save_baseline(baseline, path)
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["files"]["a.rs"] == {"hash": "h1", "lines": 20, "type": "content"}
    assert payload["files"]["src"] == {"count": 3, "type": "structure", "violation": "dirs"}
    assert load_baseline(path, required=True) == baseline


def test_missing_baseline(tmp_path: Path) -> None:
    assert load_baseline(tmp_path / "none.json", required=False) is None
    with pytest.raises(ConfigError, match="Baseline file not found"):
        load_baseline(tmp_path / "none.json", required=True)


def test_malformed_baseline_is_an_error(tmp_path: Path) -> None:
    path = tmp_path / "baseline.json"
    path.write_text('{"version": 1, "files": {"a.rs": {"type": "content"}}}', encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid baseline"):
        load_baseline(path, required=False)
