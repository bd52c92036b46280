from __future__ import annotations

from sloc_guard.checker.content import ContentEvaluator, MatchKind, MatchStatus, threshold_floor
from sloc_guard.checker.explain import explain_content, render_text
from sloc_guard.checker.result import Failed, Passed, Status, Warned
from sloc_guard.config.model import ContentConfig
from sloc_guard.counter import LineStats


def _content(**values: object) -> ContentConfig:
    return ContentConfig.model_validate(values)


def _code(count: int, *, comment: int = 0, blank: int = 0) -> LineStats:
    return LineStats(total=count + comment + blank, code=count, comment=comment, blank=blank)


def test_basic_overflow_fails() -> None:
    result = ContentEvaluator(_content(max_lines=5)).check("a.rs", _code(10))
    assert isinstance(result, Failed)
    assert result.actual == 10
    assert result.limit == 5


def test_comments_count_only_when_not_skipped() -> None:
    stats = _code(3, comment=7)
    skipping = ContentEvaluator(_content(max_lines=5)).check("a.rs", stats)
    counting = ContentEvaluator(_content(max_lines=5, skip_comments=False)).check("a.rs", stats)
    assert isinstance(skipping, Passed)
    assert skipping.actual == 3
    assert isinstance(counting, Failed)
    assert counting.actual == 10


def test_warning_band_uses_floor_of_threshold() -> None:
    evaluator = ContentEvaluator(_content(max_lines=10, warn_threshold=0.85))
    assert threshold_floor(10, 0.85) == 8
    assert isinstance(evaluator.check("a.rs", _code(8)), Passed)
    assert isinstance(evaluator.check("a.rs", _code(9)), Warned)
    assert isinstance(evaluator.check("a.rs", _code(10)), Warned)
    assert isinstance(evaluator.check("a.rs", _code(11)), Failed)


def test_last_matching_rule_wins() -> None:
    rules = [
        {"pattern": "src/**", "max_lines": 500},
        {"pattern": "src/legacy/**", "max_lines": 1500},
    ]
    forward = ContentEvaluator(_content(rules=rules))
    backward = ContentEvaluator(_content(rules=list(reversed(rules))))
    stats = _code(1200)
    assert isinstance(forward.check("src/legacy/x.rs", stats), Passed)
    assert isinstance(backward.check("src/legacy/x.rs", stats), Failed)


def test_override_beats_rules_and_first_override_wins() -> None:
    evaluator = ContentEvaluator(
        _content(
            rules=[{"pattern": "**", "max_lines": 10}],
            overrides=[
                {"path": "src/big.rs", "max_lines": 900, "reason": "parser tables"},
                {"path": "big.rs", "max_lines": 20},
            ],
        )
    )
    resolution = evaluator.resolve("src/big.rs")
    assert resolution.matched.kind is MatchKind.OVERRIDE
    assert resolution.limit == 900
    assert resolution.override_reason == "parser tables"
    statuses = [c.status for c in resolution.candidates if c.source.startswith("content.overrides")]
    assert statuses == [MatchStatus.MATCHED, MatchStatus.SUPERSEDED]


def test_language_rule_loses_to_user_rule() -> None:
    evaluator = ContentEvaluator(
        _content(
            languages={"rs": {"max_lines": 100}},
            rules=[{"pattern": "src/**", "max_lines": 300}],
        )
    )
    assert evaluator.resolve("src/a.rs").limit == 300
    assert evaluator.resolve("lib/a.rs").limit == 100
    assert evaluator.resolve("lib/a.go").limit == 500


def test_rule_warn_at_takes_precedence_over_threshold() -> None:
    evaluator = ContentEvaluator(
        _content(rules=[{"pattern": "**", "max_lines": 100, "warn_at": 50, "warn_threshold": 0.9}])
    )
    resolution = evaluator.resolve("x.rs")
    assert resolution.warn_at == 50
    assert resolution.warn_source.mode == "absolute"


def test_rule_skip_flags_override_global() -> None:
    evaluator = ContentEvaluator(
        _content(max_lines=5, rules=[{"pattern": "docs/**", "max_lines": 5, "skip_comments": False}])
    )
    stats = _code(2, comment=4)
    assert isinstance(evaluator.check("docs/a.rs", stats), Failed)
    assert isinstance(evaluator.check("src/a.rs", stats), Passed)


def test_cli_overrides_replace_global_defaults() -> None:
    evaluator = ContentEvaluator(_content(max_lines=500), max_lines=5, warn_threshold=1.0)
    assert evaluator.check("a.rs", _code(5)).status is Status.PASSED
    assert evaluator.check("a.rs", _code(6)).status is Status.FAILED


def test_excluded_paths_always_pass() -> None:
    evaluator = ContentEvaluator(_content(max_lines=1, exclude=["gen/**"]))
    assert evaluator.is_excluded("gen/a.rs")
    assert isinstance(evaluator.check("gen/a.rs", _code(50)), Passed)


def test_zero_limit_fails_any_code() -> None:
    evaluator = ContentEvaluator(_content(max_lines=0))
    assert isinstance(evaluator.check("a.rs", _code(1)), Failed)
    assert isinstance(evaluator.check("a.rs", _code(0, comment=3)), Passed)


def test_explain_lists_every_candidate() -> None:
    evaluator = ContentEvaluator(
        _content(
            rules=[
                {"pattern": "src/**", "max_lines": 400},
                {"pattern": "src/legacy/**", "max_lines": 900, "reason": "old code"},
            ]
        )
    )
    explanation = explain_content(evaluator, "src/legacy/x.rs", _code(950))
    payload = explanation.to_payload()
    assert payload["limit"] == 900
    assert payload["status"] == "failed"
    sources = {c["source"]: c["status"] for c in payload["candidates"]}
    assert sources == {
        "content.rules[1]": "matched",
        "content.rules[0]": "superseded",
        "content (defaults)": "superseded",
    }
    text = render_text(explanation)
    assert "Matched: rule src/legacy/**" in text
    assert "Reason: old code" in text
