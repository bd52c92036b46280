from __future__ import annotations

from sloc_guard.analyzer import (
    FunctionInfo,
    SplitAnalyzer,
    parse_c,
    parse_go,
    parse_js,
    parse_python,
    parse_rust,
    parser_for,
)


def _rust_fn(name: str, body_lines: int) -> str:
    return f"pub fn {name}() {{\n" + "    step();\n" * body_lines + "}\n"


def test_parse_rust_functions_with_block_ends() -> None:
    lines = (_rust_fn("alpha", 2) + "\n" + _rust_fn("beta", 1)).splitlines()
    assert parse_rust(lines) == [
        FunctionInfo("alpha", 1, 4),
        FunctionInfo("beta", 6, 8),
    ]


def test_parse_go_methods() -> None:
    lines = ["func (s *Server) Start() error {", "    return nil", "}"]
    assert parse_go(lines) == [FunctionInfo("Start", 1, 3)]


def test_parse_python_top_level_only() -> None:
    lines = [
        "class Box:",
        "    def inner(self):",
        "        return 1",
        "",
        "async def run():",
        "    pass",
    ]
    assert [f.name for f in parse_python(lines)] == ["Box", "run"]
    assert parse_python(lines)[0].end_line == 4


def test_parse_js_functions_arrows_and_classes() -> None:
    lines = [
        "export function load() {",
        "}",
        "const save = async (x) => {",
        "};",
        "class Store {",
        "}",
    ]
    assert [f.name for f in parse_js(lines)] == ["load", "save", "Store"]


def test_parse_c_skips_control_flow() -> None:
    lines = ["static int add(int a, int b) {", "  if (a) {", "  }", "  return a + b;", "}"]
    assert [f.name for f in parse_c(lines)] == ["add"]


def test_parser_lookup_is_case_insensitive() -> None:
    assert parser_for("Rust") is parse_rust
    assert parser_for("C++") is parse_c
    assert parser_for("Haskell") is None


def test_large_file_is_split_into_chunks() -> None:
    text = "".join(_rust_fn(f"f{i}", 118) for i in range(4))
    suggestion = SplitAnalyzer(target_size=300).analyze("src/engine.rs", text, "Rust", 200)
    assert suggestion is not None
    assert [c.functions for c in suggestion.chunks] == [["f0", "f1"], ["f2", "f3"]]
    assert suggestion.chunks[0].suggested_name == "engine_part1"
    assert suggestion.total_lines == 480


def test_oversized_function_gets_its_own_chunk() -> None:
    text = _rust_fn("small", 5) + _rust_fn("huge", 250) + _rust_fn("tail", 5)
    suggestion = SplitAnalyzer().analyze("big.rs", text, "Rust", 100)
    assert suggestion is not None
    names = [c.suggested_name for c in suggestion.chunks]
    assert names == ["big_part1", "big_tail"]
    assert suggestion.chunks[0].functions == ["small", "huge"]


def test_no_suggestion_when_one_chunk_suffices() -> None:
    text = _rust_fn("a", 3) + _rust_fn("b", 3)
    assert SplitAnalyzer().analyze("x.rs", text, "Rust", 5) is None
    assert SplitAnalyzer().analyze("x.hs", "main = pure ()\n", "Haskell", 5) is None
