from __future__ import annotations

import pytest

from sloc_guard.counter import IGNORED_FILE, LineClassifier, LineStats, classify
from sloc_guard.language import LanguageRegistry


def _syntax(ext: str):
    language = LanguageRegistry.default().by_extension(ext)
    assert language is not None
    return language.syntax


def test_empty_input_has_no_lines() -> None:
    assert classify("", _syntax("rs")) == LineStats()


def test_trailing_newline_does_not_add_a_line() -> None:
    stats = classify("a = 1\nb = 2\n", _syntax("py"))
    assert stats == LineStats(total=2, code=2)


def test_crlf_line_endings() -> None:
    stats = classify("x := 1\r\n\r\n// note\r\n", _syntax("go"))
    assert stats == LineStats(total=3, code=1, comment=1, blank=1)


def test_code_with_trailing_comment_counts_as_code() -> None:
    stats = classify("int x = 1; // set\n", _syntax("c"))
    assert stats.code == 1
    assert stats.comment == 0


def test_nested_rust_block_comment_closes_before_code() -> None:
    stats = classify("/* a /* b */ c */ fn f(){}\n", _syntax("rs"))
    assert stats == LineStats(total=1, code=1)


def test_nested_rust_comment_spanning_lines() -> None:
    text = "/* outer\n/* inner */\nstill comment */\nfn main() {}\n"
    stats = classify(text, _syntax("rs"))
    assert stats == LineStats(total=4, code=1, comment=3)


def test_non_nesting_c_comment_ends_at_first_close() -> None:
    text = "/* a /* b */\nint x;\n"
    stats = classify(text, _syntax("c"))
    assert stats == LineStats(total=2, code=1, comment=1)


def test_lua_long_bracket_comment_with_level() -> None:
    text = "--[=[\nanything ]] here\nmore\nstill\n]=]\n"
    stats = classify(text, _syntax("lua"))
    assert stats == LineStats(total=5, comment=5)


def test_comment_marker_inside_string_is_code() -> None:
    stats = classify('let s = "/* not a comment";\nlet t = 1;\n', _syntax("rs"))
    assert stats == LineStats(total=2, code=2)


def test_rust_raw_string_hides_comment_markers() -> None:
    text = 'let s = r#"\n// inside\n"#;\n'
    stats = classify(text, _syntax("rs"))
    assert stats == LineStats(total=3, code=3)


def test_rust_lifetime_is_not_a_string() -> None:
    text = "fn f<'a>(x: &'a str) {}\n// c\n"
    stats = classify(text, _syntax("rs"))
    assert stats == LineStats(total=2, code=1, comment=1)


def test_python_docstring_is_comment_and_string_is_code() -> None:
    text = 'def f():\n    """Doc\n    more\n    """\n    x = """a\nb"""\n'
    stats = classify(text, _syntax("py"))
    assert stats.comment == 3
    assert stats.code == 3


def test_blank_line_inside_open_string_counts_as_code() -> None:
    text = 'x = """\n\n"""\n'
    stats = classify(text, _syntax("py"))
    assert stats == LineStats(total=3, code=3)


def test_ignore_file_directive_within_window() -> None:
    text = "// sloc-guard:ignore-file\nfn main() {}\n"
    assert classify(text, _syntax("rs")) is IGNORED_FILE


def test_ignore_file_directive_after_window_is_plain_comment() -> None:
    text = "fn a() {}\n" * 10 + "// sloc-guard:ignore-file\n"
    stats = classify(text, _syntax("rs"))
    assert isinstance(stats, LineStats)
    assert stats.comment == 1


def test_ignore_file_directive_inside_string_is_not_honoured() -> None:
    text = 'x = """\n# sloc-guard:ignore-file\n"""\n'
    assert isinstance(classify(text, _syntax("py")), LineStats)


def test_ignore_next_directive() -> None:
    text = "# sloc-guard:ignore-next 2\na = 1\nb = 2\nc = 3\n"
    stats = classify(text, _syntax("py"))
    assert stats == LineStats(total=4, code=1, comment=1, ignored=2)


def test_ignore_block_directives() -> None:
    text = (
        "// sloc-guard:ignore-start\n"
        "generated();\n"
        "\n"
        "// sloc-guard:ignore-end\n"
        "real();\n"
    )
    stats = classify(text, _syntax("js"))
    assert stats == LineStats(total=5, code=1, comment=2, ignored=2)


@pytest.mark.parametrize(
    ("ext", "text", "expected"),
    [
        ("sql", "-- note\nSELECT 1;\n", LineStats(total=2, code=1, comment=1)),
        ("sh", "#!/bin/sh\necho hi\n", LineStats(total=2, code=1, comment=1)),
        ("hs", "{- a {- b -} -}\nmain = pure ()\n", LineStats(total=2, code=1, comment=1)),
        ("html", "<!-- a\nb -->\n<p>x</p>\n", LineStats(total=3, code=1, comment=2)),
    ],
)
def test_builtin_language_syntaxes(ext: str, text: str, expected: LineStats) -> None:
    assert classify(text, _syntax(ext)) == expected


def test_categories_sum_to_total() -> None:
    text = "/* c */\n\nfn x() {}\n// sloc-guard:ignore-next 1\nfn y() {}\n"
    stats = LineClassifier(_syntax("rs")).classify(text.encode())
    assert isinstance(stats, LineStats)
    assert stats.code + stats.comment + stats.blank + stats.ignored == stats.total


def test_effective_counts_respect_skip_flags() -> None:
    stats = LineStats(total=10, code=3, comment=7)
    assert stats.effective(skip_comments=True, skip_blank=True) == 3
    assert stats.effective(skip_comments=False, skip_blank=True) == 10


def test_line_stats_payload_rejects_inconsistent_totals() -> None:
    with pytest.raises(ValueError):
        LineStats.from_payload({"total": 5, "code": 1})
