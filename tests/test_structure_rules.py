from __future__ import annotations

from sloc_guard.checker.explain import explain_structure, render_text
from sloc_guard.checker.result import Failed, ViolationKind, Warned
from sloc_guard.checker.structure import DirStats, StructureEvaluator
from sloc_guard.config.model import StructureConfig


def _structure(**values: object) -> StructureConfig:
    return StructureConfig.model_validate(values)


def _dir(path: str, depth: int, files: int = 0, subdirs: int = 0, names: list[str] | None = None) -> DirStats:
    return DirStats(
        path=path,
        depth=depth,
        files=names if names is not None else [f"f{i}.rs" for i in range(files)],
        subdirs=[f"d{i}" for i in range(subdirs)],
    )


def _kinds(evaluator: StructureEvaluator, dirs: list[DirStats]) -> list[tuple[str, ViolationKind, bool]]:
    return [(v.path, v.kind, v.is_warning) for v in evaluator.check(dirs)]


def test_disabled_without_any_structure_setting() -> None:
    assert not StructureEvaluator(_structure()).enabled
    assert StructureEvaluator(_structure(), max_files=3).enabled


def test_file_count_limit_and_warning() -> None:
    evaluator = StructureEvaluator(_structure(max_files=10, warn_threshold=0.8))
    dirs = [_dir("a", 1, files=11), _dir("b", 1, files=9), _dir("c", 1, files=8)]
    assert _kinds(evaluator, dirs) == [
        ("a", ViolationKind.FILE_COUNT, False),
        ("b", ViolationKind.FILE_COUNT, True),
    ]


def test_unlimited_and_zero_limits() -> None:
    unlimited = StructureEvaluator(_structure(max_files=-1))
    assert unlimited.check([_dir("a", 1, files=500)]) == []
    zero = StructureEvaluator(_structure(max_subdirs=0))
    assert _kinds(zero, [_dir("a", 1, subdirs=1)]) == [("a", ViolationKind.DIR_COUNT, False)]


def test_count_exclude_drops_files_from_count() -> None:
    evaluator = StructureEvaluator(_structure(max_files=1, count_exclude=["*.md"]))
    stats = _dir("a", 1, names=["x.rs", "README.md"])
    assert evaluator.check([stats]) == []


def test_last_matching_scope_wins_and_inherits_unset_fields() -> None:
    evaluator = StructureEvaluator(
        _structure(
            max_files=5,
            max_subdirs=2,
            rules=[
                {"scope": "src/**", "max_files": 50},
                {"scope": "src/generated/**", "max_files": 500},
            ],
        )
    )
    resolution = evaluator.resolve("src/generated/x")
    assert resolution.effective.source == "structure.rules[1]"
    assert resolution.effective.max_files == 500
    assert resolution.effective.max_subdirs == 2


def test_override_is_exact_path_and_beats_rules() -> None:
    evaluator = StructureEvaluator(
        _structure(
            max_files=5,
            rules=[{"scope": "src/**", "max_files": 50}],
            overrides=[{"path": "src/huge", "max_files": 1000, "reason": "fixtures"}],
        )
    )
    assert evaluator.resolve("src/huge").effective.max_files == 1000
    assert evaluator.resolve("src/huge/inner").effective.max_files == 50


def test_max_depth_absolute_and_relative() -> None:
    absolute = StructureEvaluator(_structure(max_depth=2))
    assert _kinds(absolute, [_dir("a/b/c", 3)]) == [("a/b/c", ViolationKind.MAX_DEPTH, False)]
    relative = StructureEvaluator(
        _structure(rules=[{"scope": "packages/**", "max_depth": 1, "relative_depth": True}])
    )
    assert relative.check([_dir("packages/a", 2)]) == []
    assert _kinds(relative, [_dir("packages/a/b", 3)]) == [
        ("packages/a/b", ViolationKind.MAX_DEPTH, False)
    ]


def test_max_depth_warning_band() -> None:
    evaluator = StructureEvaluator(_structure(max_depth=5))
    assert evaluator.resolve("a").effective.depth_warn_limit() == 4
    assert _kinds(evaluator, [_dir("a/b/c/d/e", 5), _dir("a/b/c/d", 4)]) == [
        ("a/b/c/d/e", ViolationKind.MAX_DEPTH, True)
    ]
    lenient = StructureEvaluator(_structure(max_depth=5, warn_threshold=1.0))
    assert lenient.check([_dir("a/b/c/d/e", 5)]) == []


def test_deny_lists_report_each_file() -> None:
    evaluator = StructureEvaluator(
        _structure(deny_extensions=[".exe"], deny_files=["*.bak"], deny_dirs=["__pycache__"])
    )
    stats = DirStats("src", 1, files=["a.exe", "b.bak", "c.rs"], subdirs=["__pycache__", "lib"])
    assert _kinds(evaluator, [stats]) == [
        ("src/__pycache__", ViolationKind.DISALLOWED_DIR, False),
        ("src/a.exe", ViolationKind.DISALLOWED_FILE, False),
        ("src/b.bak", ViolationKind.DISALLOWED_FILE, False),
    ]


def test_rule_allowlist_replaces_global_allowlist() -> None:
    evaluator = StructureEvaluator(
        _structure(
            allow_extensions=["rs"],
            rules=[{"scope": "web/**", "allow_extensions": ["ts"]}],
        )
    )
    web = DirStats("web/app", 2, files=["a.ts", "b.rs"])
    core = DirStats("core", 1, files=["a.ts", "b.rs"])
    assert _kinds(evaluator, [web, core]) == [
        ("core/a.ts", ViolationKind.DISALLOWED_FILE, False),
        ("web/app/b.rs", ViolationKind.DISALLOWED_FILE, False),
    ]


def test_naming_pattern() -> None:
    evaluator = StructureEvaluator(_structure(file_naming_pattern=r"^[a-z_]+\.rs$"))
    stats = DirStats("src", 1, files=["good_name.rs", "BadName.rs"])
    violations = evaluator.check([stats])
    assert [(v.path, v.kind) for v in violations] == [("src/BadName.rs", ViolationKind.NAMING_PATTERN)]


def test_single_sibling_requirement() -> None:
    evaluator = StructureEvaluator(
        _structure(
            rules=[
                {
                    "scope": "src/components/**",
                    "file_pattern": "*.tsx",
                    "require_sibling": "{stem}.test.ts",
                }
            ]
        )
    )
    stats = DirStats(
        "src/components/ui",
        3,
        files=["Button.tsx", "Button.test.ts", "Card.tsx"],
    )
    violations = evaluator.check([stats])
    assert [(v.path, v.kind) for v in violations] == [
        ("src/components/ui/Card.tsx", ViolationKind.MISSING_SIBLING)
    ]
    assert violations[0].detail == "missing sibling Card.test.ts"


def test_sibling_group_requirement() -> None:
    evaluator = StructureEvaluator(
        _structure(
            rules=[
                {
                    "scope": "lib/**",
                    "require_sibling": ["{stem}.h", "{stem}.c"],
                }
            ]
        )
    )
    stats = DirStats("lib/io", 2, files=["buf.c", "buf.h", "net.c"])
    violations = evaluator.check([stats])
    assert [(v.path, v.kind) for v in violations] == [("lib/io/net.c", ViolationKind.GROUP_INCOMPLETE)]
    assert violations[0].detail == "missing net.h"


def test_violations_become_results() -> None:
    evaluator = StructureEvaluator(_structure(max_files=1, warn_files_at=0))
    results = [v.to_check_result() for v in evaluator.check([_dir("a", 1, files=2), _dir("b", 1, files=1)])]
    assert isinstance(results[0], Failed)
    assert isinstance(results[1], Warned)
    assert results[0].violation_category is ViolationKind.FILE_COUNT
    assert results[0].actual == 2


def test_explain_structure() -> None:
    evaluator = StructureEvaluator(
        _structure(max_files=5, rules=[{"scope": "src/**", "max_files": 9, "reason": "big"}])
    )
    explanation = explain_structure(evaluator, "src/a")
    payload = explanation.to_payload()
    assert payload["source"] == "structure.rules[0]"
    assert payload["max_files"] == 9
    assert "Reason: big" in render_text(explanation)
