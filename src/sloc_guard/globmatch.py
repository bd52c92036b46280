"""Glob compilation for rule patterns.

Patterns follow gitignore-free "globset" semantics: ``*`` and ``?`` also
match ``/``, ``**`` spans any number of path components, ``[...]`` is a
character class (``[!...]`` negated) and ``{a,b}`` is an alternation.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import PurePath
import re

from sloc_guard.errors import InvalidPatternError

GLOB_META = frozenset("*?[{")


def normalize_path(path: str | PurePath) -> str:
    text = str(path).replace("\\", "/")
    while text.startswith("./"):
        text = text[2:]
    if len(text) > 1:
        text = text.rstrip("/")
    return text


def literal_prefix(pattern: str) -> str:
    """Return the path components of ``pattern`` before the first glob metacharacter."""
    parts: list[str] = []
    for part in normalize_path(pattern).split("/"):
        if any(ch in GLOB_META for ch in part):
            break
        parts.append(part)
    return "/".join(p for p in parts if p)


def _translate(pattern: str) -> str:
    out: list[str] = []
    i = 0
    n = len(pattern)
    brace_depth = 0
    while i < n:
        ch = pattern[i]
        if ch == "*":
            if pattern.startswith("**", i):
                at_start = i == 0 or pattern[i - 1] == "/"
                j = i + 2
                if at_start and j < n and pattern[j] == "/":
                    # "**/" also matches zero components.
                    out.append("(?:.*/)?")
                    i = j + 1
                    continue
                out.append(".*")
                i = j
                continue
            out.append(".*")
            i += 1
            continue
        if ch == "?":
            out.append(".")
            i += 1
            continue
        if ch == "[":
            j = i + 1
            negate = False
            if j < n and pattern[j] in "!^":
                negate = True
                j += 1
            if j < n and pattern[j] == "]":
                j += 1
            while j < n and pattern[j] != "]":
                j += 1
            if j >= n:
                raise InvalidPatternError(pattern=pattern, reason="unclosed character class")
            body = pattern[i + 1 + (1 if negate else 0) : j]
            body = body.replace("\\", "\\\\")
            out.append(("[^" if negate else "[") + body + "]")
            i = j + 1
            continue
        if ch == "{":
            brace_depth += 1
            out.append("(?:")
            i += 1
            continue
        if ch == "}":
            if brace_depth == 0:
                raise InvalidPatternError(pattern=pattern, reason="unopened alternation group")
            brace_depth -= 1
            out.append(")")
            i += 1
            continue
        if ch == "," and brace_depth > 0:
            out.append("|")
            i += 1
            continue
        if ch == "\\":
            if i + 1 >= n:
                raise InvalidPatternError(pattern=pattern, reason="dangling escape")
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        out.append(re.escape(ch))
        i += 1
    if brace_depth:
        raise InvalidPatternError(pattern=pattern, reason="unclosed alternation group")
    return "".join(out)


@dataclass(frozen=True)
class Glob:
    pattern: str
    regex: re.Pattern[str]

    def matches(self, path: str | PurePath) -> bool:
        return self.regex.fullmatch(normalize_path(path)) is not None


@lru_cache(maxsize=4096)
def compile_glob(pattern: str) -> Glob:
    normalized = normalize_path(pattern) if pattern not in ("", "/") else pattern
    try:
        regex = re.compile(_translate(normalized), re.DOTALL)
    except re.error as exc:
        raise InvalidPatternError(pattern=pattern, reason=str(exc)) from exc
    return Glob(pattern=pattern, regex=regex)


class GlobSet:
    """Ordered set of globs; ``matching`` reports indices in declaration order."""

    def __init__(self, patterns: list[str] | tuple[str, ...]) -> None:
        self.globs = tuple(compile_glob(p) for p in patterns)

    def __len__(self) -> int:
        return len(self.globs)

    def is_match(self, path: str | PurePath) -> bool:
        normalized = normalize_path(path)
        return any(g.regex.fullmatch(normalized) is not None for g in self.globs)

    def matching(self, path: str | PurePath) -> list[int]:
        normalized = normalize_path(path)
        return [
            index
            for index, glob in enumerate(self.globs)
            if glob.regex.fullmatch(normalized) is not None
        ]

    def matches_dir(self, path: str | PurePath) -> bool:
        """Directory test: ``vendor/**`` excludes ``vendor`` itself as well as its contents."""
        normalized = normalize_path(path)
        return any(
            g.regex.fullmatch(normalized) is not None
            or g.regex.fullmatch(normalized + "/") is not None
            for g in self.globs
        )
