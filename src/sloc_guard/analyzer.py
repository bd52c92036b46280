"""Split suggestions for oversized files.

Function boundaries are found with line-anchored regexes and brace or
indentation tracking. This is a heuristic: no language toolchain is needed
and nothing is parsed for real.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Callable
import re

from sloc_guard.json_types import JSONObject

DEFAULT_TARGET_SIZE = 300

_RUST_FN = re.compile(
    r"^[\t ]*(pub(?:\s*\([^)]*\))?\s+)?(async\s+)?(unsafe\s+)?(const\s+)?fn\s+([a-zA-Z_][a-zA-Z0-9_]*)"
)
_GO_FN = re.compile(r"^func\s+(?:\([^)]+\)\s+)?([a-zA-Z_][a-zA-Z0-9_]*)")
_PY_DEF = re.compile(r"^(\s*)(?:async\s+)?def\s+([a-zA-Z_][a-zA-Z0-9_]*)")
_PY_CLASS = re.compile(r"^(\s*)class\s+([a-zA-Z_][a-zA-Z0-9_]*)")
_JS_FN = re.compile(r"^[\t ]*(export\s+)?(async\s+)?function\s+([a-zA-Z_$][a-zA-Z0-9_$]*)")
_JS_ARROW = re.compile(
    r"^[\t ]*(export\s+)?(const|let|var)\s+([a-zA-Z_$][a-zA-Z0-9_$]*)\s*=\s*(async\s+)?\("
)
_JS_CLASS = re.compile(r"^[\t ]*(export\s+)?class\s+([a-zA-Z_$][a-zA-Z0-9_$]*)")
_C_FN = re.compile(
    r"^[\t ]*(?:static\s+|inline\s+|extern\s+|virtual\s+|explicit\s+)*"
    r"(?:[a-zA-Z_][a-zA-Z0-9_:*&<>\s]*)\s+([a-zA-Z_][a-zA-Z0-9_]*)\s*\([^)]*\)\s*"
    r"(?:const\s*)?(?:noexcept\s*)?(?:override\s*)?(?:final\s*)?\{"
)
_C_KEYWORDS = frozenset({"if", "while", "for", "switch", "catch"})


@dataclass(frozen=True)
class FunctionInfo:
    name: str
    start_line: int
    end_line: int

    @property
    def line_count(self) -> int:
        return max(self.end_line - self.start_line, 0) + 1

    def to_payload(self) -> JSONObject:
        return {
            "name": self.name,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "line_count": self.line_count,
        }


@dataclass(frozen=True)
class SplitChunk:
    suggested_name: str
    functions: list[str]
    start_line: int
    end_line: int
    line_count: int

    def to_payload(self) -> JSONObject:
        return {
            "suggested_name": self.suggested_name,
            "functions": list(self.functions),
            "start_line": self.start_line,
            "end_line": self.end_line,
            "line_count": self.line_count,
        }


@dataclass(frozen=True)
class SplitSuggestion:
    original_path: str
    total_lines: int
    limit: int
    functions: list[FunctionInfo] = field(default_factory=list)
    chunks: list[SplitChunk] = field(default_factory=list)

    def to_payload(self) -> JSONObject:
        return {
            "original_path": self.original_path,
            "total_lines": self.total_lines,
            "limit": self.limit,
            "functions": [f.to_payload() for f in self.functions],
            "chunks": [c.to_payload() for c in self.chunks],
        }


def find_block_end(lines: list[str], start: int) -> int:
    """1-indexed line closing the first brace block opened at or after ``start``."""
    depth = 0
    found_open = False
    for index in range(start, len(lines)):
        for ch in lines[index]:
            if ch == "{":
                depth += 1
                found_open = True
            elif ch == "}":
                depth -= 1
                if found_open and depth == 0:
                    return index + 1
    return len(lines)


def find_indent_block_end(lines: list[str], start: int, base_indent: int) -> int:
    end_line = start + 1
    for index in range(start + 1, len(lines)):
        line = lines[index]
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            end_line = index + 1
            continue
        indent = len(line) - len(line.lstrip())
        if indent <= base_indent:
            break
        end_line = index + 1
    return end_line


def _parse_braced(lines: list[str], pattern: re.Pattern[str], group: int) -> list[FunctionInfo]:
    functions: list[FunctionInfo] = []
    for index, line in enumerate(lines):
        match = pattern.match(line)
        if match is None:
            continue
        functions.append(FunctionInfo(match.group(group), index + 1, find_block_end(lines, index)))
    return functions


def parse_rust(lines: list[str]) -> list[FunctionInfo]:
    return _parse_braced(lines, _RUST_FN, 5)


def parse_go(lines: list[str]) -> list[FunctionInfo]:
    return _parse_braced(lines, _GO_FN, 1)


def parse_python(lines: list[str]) -> list[FunctionInfo]:
    """Top-level ``def`` and ``class`` blocks only."""
    functions: list[FunctionInfo] = []
    for index, line in enumerate(lines):
        match = _PY_DEF.match(line) or _PY_CLASS.match(line)
        if match is None or match.group(1):
            continue
        functions.append(
            FunctionInfo(match.group(2), index + 1, find_indent_block_end(lines, index, 0))
        )
    return functions


def parse_js(lines: list[str]) -> list[FunctionInfo]:
    functions: list[FunctionInfo] = []
    for index, line in enumerate(lines):
        name: str | None = None
        match = _JS_FN.match(line)
        if match is not None:
            name = match.group(3)
        elif (match := _JS_ARROW.match(line)) is not None:
            name = match.group(3)
        elif (match := _JS_CLASS.match(line)) is not None:
            name = match.group(2)
        if name is not None:
            functions.append(FunctionInfo(name, index + 1, find_block_end(lines, index)))
    return functions


def parse_c(lines: list[str]) -> list[FunctionInfo]:
    return [
        info
        for info in _parse_braced(lines, _C_FN, 1)
        if info.name not in _C_KEYWORDS
    ]


_PARSERS: dict[str, Callable[[list[str]], list[FunctionInfo]]] = {
    "rust": parse_rust,
    "go": parse_go,
    "python": parse_python,
    "javascript": parse_js,
    "typescript": parse_js,
    "c": parse_c,
    "c++": parse_c,
}


def parser_for(language: str) -> Callable[[list[str]], list[FunctionInfo]] | None:
    return _PARSERS.get(language.lower())


class SplitAnalyzer:
    def __init__(self, target_size: int = DEFAULT_TARGET_SIZE) -> None:
        self.target_size = target_size

    def analyze(
        self, path: str, content: str, language: str, limit: int
    ) -> SplitSuggestion | None:
        parse = parser_for(language)
        if parse is None:
            return None
        lines = content.splitlines()
        functions = parse(lines)
        if not functions:
            return None
        chunks = self.chunks(PurePosixPath(path).stem or "file", functions, limit)
        if not chunks:
            return None
        return SplitSuggestion(path, len(lines), limit, functions, chunks)

    def chunks(
        self, base_name: str, functions: list[FunctionInfo], limit: int
    ) -> list[SplitChunk]:
        """Greedy grouping up to ``target_size``; an empty list means no split is worth it."""
        chunks: list[SplitChunk] = []
        current: list[FunctionInfo] = []
        current_lines = 0
        for func in functions:
            if current and current_lines + func.line_count > self.target_size:
                chunks.append(_make_chunk(base_name, len(chunks) + 1, current))
                current, current_lines = [], 0
            current.append(func)
            current_lines += func.line_count
            # A function bigger than the limit gets a chunk of its own.
            if func.line_count > limit:
                chunks.append(_make_chunk(base_name, len(chunks) + 1, current))
                current, current_lines = [], 0
        if current:
            chunks.append(_make_chunk(base_name, len(chunks) + 1, current))
        return chunks if len(chunks) > 1 else []


def _make_chunk(base_name: str, index: int, functions: list[FunctionInfo]) -> SplitChunk:
    if len(functions) == 1:
        name = f"{base_name}_{functions[0].name.lower()}"
    else:
        name = f"{base_name}_part{index}"
    return SplitChunk(
        suggested_name=name,
        functions=[f.name for f in functions],
        start_line=functions[0].start_line,
        end_line=functions[-1].end_line,
        line_count=sum(f.line_count for f in functions),
    )
