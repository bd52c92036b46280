"""Line classifier.

``classify`` partitions every line of a source file into code, comment,
blank or ignored. It is a single left-to-right scanner per line that carries
two pieces of state across lines: an open multi-line comment (with its
nesting depth and the end marker captured from the opener) and an open
multi-line string (triple quotes, Rust raw strings).
"""

from __future__ import annotations

from dataclasses import dataclass
import re

from sloc_guard.language import CommentSyntax, MultiLineRule, PatternKind

IGNORE_FILE_DIRECTIVE = "sloc-guard:ignore-file"
IGNORE_NEXT_DIRECTIVE = "sloc-guard:ignore-next"
IGNORE_START_DIRECTIVE = "sloc-guard:ignore-start"
IGNORE_END_DIRECTIVE = "sloc-guard:ignore-end"
IGNORE_FILE_WINDOW = 10

_IGNORE_NEXT_RE = re.compile(re.escape(IGNORE_NEXT_DIRECTIVE) + r"\s+(\d+)")
_LUA_OPEN_RE = re.compile(r"--\[(=*)\[")
_RUST_RAW_OPEN_RE = re.compile(r"r(#*)\"")
_RUST_CHAR_RE = re.compile(r"'(?:\\u\{[0-9a-fA-F]{1,6}\}|\\.|[^\\'])'")


@dataclass(frozen=True)
class LineStats:
    total: int = 0
    code: int = 0
    comment: int = 0
    blank: int = 0
    ignored: int = 0

    def __add__(self, other: "LineStats") -> "LineStats":
        return LineStats(
            total=self.total + other.total,
            code=self.code + other.code,
            comment=self.comment + other.comment,
            blank=self.blank + other.blank,
            ignored=self.ignored + other.ignored,
        )

    def effective(self, *, skip_comments: bool, skip_blank: bool) -> int:
        value = self.code
        if not skip_comments:
            value += self.comment
        if not skip_blank:
            value += self.blank
        return value

    def adjusted(self, *, skip_comments: bool, skip_blank: bool) -> "LineStats":
        """Stats as the rule sees them: skipped categories are zeroed out of ``code``."""
        return LineStats(
            total=self.total,
            code=self.effective(skip_comments=skip_comments, skip_blank=skip_blank),
            comment=self.comment,
            blank=self.blank,
            ignored=self.ignored,
        )

    def to_payload(self) -> dict[str, int]:
        return {
            "total": self.total,
            "code": self.code,
            "comment": self.comment,
            "blank": self.blank,
            "ignored": self.ignored,
        }

    @classmethod
    def from_payload(cls, payload: object) -> "LineStats":
        if not isinstance(payload, dict):
            raise ValueError("line stats must be an object")
        values: dict[str, int] = {}
        for name in ("total", "code", "comment", "blank", "ignored"):
            raw = payload.get(name, 0)
            if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
                raise ValueError(f"line stats field {name} must be a non-negative integer")
            values[name] = raw
        stats = cls(**values)
        if stats.code + stats.comment + stats.blank + stats.ignored != stats.total:
            raise ValueError("line stats categories do not sum to total")
        return stats


@dataclass(frozen=True)
class IgnoredFile:
    """Verdict for files carrying ``sloc-guard:ignore-file`` near the top."""


IGNORED_FILE = IgnoredFile()
CountResult = LineStats | IgnoredFile


@dataclass
class _InComment:
    depth: int
    start: str
    end: str
    supports_nesting: bool


@dataclass
class _InString:
    end: str
    raw: bool


class _ScanState:
    __slots__ = ("comment", "string")

    def __init__(self) -> None:
        self.comment: _InComment | None = None
        self.string: _InString | None = None


class LineClassifier:
    def __init__(self, syntax: CommentSyntax) -> None:
        self.syntax = syntax
        self._raw_strings = syntax.has_rust_raw_strings
        self._prefixes = tuple(
            sorted(syntax.single_line, key=len, reverse=True)
        )

    # -- openers -----------------------------------------------------------

    def _match_opener(
        self, line: str, pos: int
    ) -> tuple[MultiLineRule, int, str] | None:
        """Return ``(rule, opener_length, end_marker)`` for an opener at ``pos``."""
        for rule in self.syntax.multi_line:
            if rule.kind is PatternKind.LUA_LONG_BRACKET:
                match = _LUA_OPEN_RE.match(line, pos)
                if match is not None:
                    level = len(match.group(1))
                    return rule, match.end() - pos, "]" + "=" * level + "]"
                continue
            if rule.kind is PatternKind.RUST_RAW_STRING:
                match = _RUST_RAW_OPEN_RE.match(line, pos)
                if match is not None:
                    return rule, match.end() - pos, '"' + match.group(1)
                continue
            if not line.startswith(rule.start, pos):
                continue
            if rule.must_be_at_line_start and line[:pos].strip():
                continue
            return rule, len(rule.start), rule.end
        return None

    def _single_line_prefix_at(self, line: str, pos: int) -> bool:
        return any(line.startswith(prefix, pos) for prefix in self._prefixes)

    def is_single_line_comment(self, line: str) -> bool:
        trimmed = line.lstrip()
        if not trimmed:
            return False
        offset = len(line) - len(trimmed)
        if self._match_opener(line, offset) is not None:
            return False
        return self._single_line_prefix_at(line, offset)

    # -- skipping ----------------------------------------------------------

    @staticmethod
    def _skip_quoted(line: str, pos: int, quote: str) -> int | None:
        """Index after the closing ``quote`` of a string opened at ``pos``, or None."""
        i = pos + 1
        n = len(line)
        while i < n:
            ch = line[i]
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                return i + 1
            i += 1
        return None

    @staticmethod
    def _advance_string(line: str, pos: int, state: _ScanState) -> int:
        open_string = state.string
        assert open_string is not None
        if open_string.raw:
            index = line.find(open_string.end, pos)
            if index < 0:
                return len(line)
            state.string = None
            return index + len(open_string.end)
        i = pos
        n = len(line)
        while i < n:
            if line[i] == "\\":
                i += 2
                continue
            if line.startswith(open_string.end, i):
                state.string = None
                return i + len(open_string.end)
            i += 1
        return n

    def _advance_comment(self, line: str, pos: int, state: _ScanState) -> int:
        comment = state.comment
        assert comment is not None
        if not comment.supports_nesting:
            index = line.find(comment.end, pos)
            if index < 0:
                return len(line)
            state.comment = None
            return index + len(comment.end)
        i = pos
        n = len(line)
        while i < n:
            if line.startswith(comment.end, i):
                comment.depth -= 1
                i += len(comment.end)
                if comment.depth == 0:
                    state.comment = None
                    return i
                continue
            if line.startswith(comment.start, i):
                comment.depth += 1
                i += len(comment.start)
                continue
            if self._raw_strings:
                raw = _RUST_RAW_OPEN_RE.match(line, i)
                if raw is not None:
                    close = line.find('"' + raw.group(1), raw.end())
                    if close >= 0:
                        i = close + 1 + len(raw.group(1))
                        continue
            if line[i] == '"':
                close_at = self._skip_quoted(line, i, '"')
                if close_at is not None:
                    i = close_at
                    continue
            i += 1
        return n

    # -- per line ----------------------------------------------------------

    def scan_line(self, line: str, state: _ScanState) -> tuple[bool, bool]:
        """Advance ``state`` over ``line``; return ``(has_code, has_comment)``."""
        has_code = state.string is not None
        has_comment = state.comment is not None
        pos = 0
        n = len(line)
        while pos < n:
            if state.comment is not None:
                has_comment = True
                pos = self._advance_comment(line, pos, state)
                continue
            if state.string is not None:
                has_code = True
                pos = self._advance_string(line, pos, state)
                continue
            ch = line[pos]
            if ch.isspace():
                pos += 1
                continue
            opener = self._match_opener(line, pos)
            if opener is not None:
                rule, length, end = opener
                if rule.kind is PatternKind.RUST_RAW_STRING:
                    has_code = True
                    state.string = _InString(end=end, raw=True)
                else:
                    has_comment = True
                    state.comment = _InComment(
                        depth=1,
                        start=rule.start,
                        end=end,
                        supports_nesting=rule.supports_nesting,
                    )
                pos += length
                continue
            if self._single_line_prefix_at(line, pos):
                has_comment = True
                break
            has_code = True
            if line.startswith('"""', pos) or line.startswith("'''", pos):
                state.string = _InString(end=line[pos : pos + 3], raw=False)
                pos += 3
                continue
            if ch == '"':
                close_at = self._skip_quoted(line, pos, '"')
                pos = n if close_at is None else close_at
                continue
            if ch == "'":
                pos = self._skip_single_quote(line, pos)
                continue
            pos += 1
        return has_code, has_comment

    def _skip_single_quote(self, line: str, pos: int) -> int:
        if self._raw_strings:
            # Rust: only char literals; a bare quote is a lifetime.
            match = _RUST_CHAR_RE.match(line, pos)
            return match.end() if match is not None else pos + 1
        close_at = self._skip_quoted(line, pos, "'")
        # An unclosed quote is treated as an apostrophe.
        return pos + 1 if close_at is None else close_at

    def classify(self, data: bytes | str) -> CountResult:
        text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
        if not text:
            return LineStats()
        lines = text.split("\n")
        if text.endswith("\n"):
            lines.pop()

        state = _ScanState()
        code = comment = blank = ignored = 0
        ignore_remaining = 0
        in_ignore_block = False

        for index, raw_line in enumerate(lines):
            line = raw_line[:-1] if raw_line.endswith("\r") else raw_line
            directive_line = (
                state.comment is None
                and state.string is None
                and self.is_single_line_comment(line)
            )
            if directive_line and index < IGNORE_FILE_WINDOW and IGNORE_FILE_DIRECTIVE in line:
                return IGNORED_FILE

            has_code, has_comment = self.scan_line(line, state)

            if in_ignore_block:
                if directive_line and IGNORE_END_DIRECTIVE in line:
                    in_ignore_block = False
                    comment += 1
                else:
                    ignored += 1
                continue
            if ignore_remaining > 0:
                ignore_remaining -= 1
                ignored += 1
                continue

            if directive_line:
                if IGNORE_START_DIRECTIVE in line:
                    in_ignore_block = True
                else:
                    match = _IGNORE_NEXT_RE.search(line)
                    if match is not None:
                        ignore_remaining = int(match.group(1))

            if has_code:
                code += 1
            elif has_comment:
                comment += 1
            elif line.strip():
                code += 1
            else:
                blank += 1

        return LineStats(
            total=code + comment + blank + ignored,
            code=code,
            comment=comment,
            blank=blank,
            ignored=ignored,
        )


def classify(data: bytes | str, syntax: CommentSyntax) -> CountResult:
    return LineClassifier(syntax).classify(data)
