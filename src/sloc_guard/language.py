"""Language registry: extensions and comment syntax."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping


class PatternKind(str, Enum):
    STATIC = "static"
    LUA_LONG_BRACKET = "lua_long_bracket"
    RUST_RAW_STRING = "rust_raw_string"


@dataclass(frozen=True)
class MultiLineRule:
    start: str
    end: str
    supports_nesting: bool = False
    must_be_at_line_start: bool = False
    kind: PatternKind = PatternKind.STATIC


@dataclass(frozen=True)
class CommentSyntax:
    single_line: tuple[str, ...] = ()
    multi_line: tuple[MultiLineRule, ...] = ()

    @property
    def has_rust_raw_strings(self) -> bool:
        return any(r.kind is PatternKind.RUST_RAW_STRING for r in self.multi_line)

    def to_payload(self) -> dict[str, object]:
        return {
            "single_line": list(self.single_line),
            "multi_line": [
                {
                    "start": rule.start,
                    "end": rule.end,
                    "supports_nesting": rule.supports_nesting,
                    "must_be_at_line_start": rule.must_be_at_line_start,
                    "kind": rule.kind.value,
                }
                for rule in self.multi_line
            ],
        }


@dataclass(frozen=True)
class Language:
    name: str
    extensions: tuple[str, ...]
    syntax: CommentSyntax = field(default_factory=CommentSyntax)


def _c_style(*extra_single: str, nesting: bool = False) -> CommentSyntax:
    return CommentSyntax(
        single_line=("//",) + extra_single,
        multi_line=(MultiLineRule("/*", "*/", supports_nesting=nesting),),
    )


_RUST = CommentSyntax(
    single_line=("//",),
    multi_line=(
        MultiLineRule("/*", "*/", supports_nesting=True),
        MultiLineRule('r"', '"', kind=PatternKind.RUST_RAW_STRING),
    ),
)

_PYTHON = CommentSyntax(
    single_line=("#",),
    multi_line=(
        MultiLineRule('"""', '"""', must_be_at_line_start=True),
        MultiLineRule("'''", "'''", must_be_at_line_start=True),
    ),
)

_LUA = CommentSyntax(
    single_line=("--",),
    multi_line=(MultiLineRule("--[[", "]]", kind=PatternKind.LUA_LONG_BRACKET),),
)

_HASH = CommentSyntax(single_line=("#",))

_BUILTIN: tuple[Language, ...] = (
    Language("Rust", ("rs",), _RUST),
    Language("Go", ("go",), _c_style()),
    Language("Python", ("py", "pyi"), _PYTHON),
    Language("JavaScript", ("js", "mjs", "cjs", "jsx"), _c_style()),
    Language("TypeScript", ("ts", "mts", "cts", "tsx"), _c_style()),
    Language("C", ("c", "h"), _c_style()),
    Language("C++", ("cpp", "hpp", "cc", "cxx", "hxx", "hh"), _c_style()),
    Language("C#", ("cs",), _c_style()),
    Language("Java", ("java",), _c_style()),
    Language("Kotlin", ("kt", "kts"), _c_style(nesting=True)),
    Language("Scala", ("scala", "sc"), _c_style(nesting=True)),
    Language("Swift", ("swift",), _c_style(nesting=True)),
    Language("Dart", ("dart",), _c_style(nesting=True)),
    Language("PHP", ("php",), _c_style("#")),
    Language("Lua", ("lua",), _LUA),
    Language(
        "Ruby",
        ("rb",),
        CommentSyntax(
            single_line=("#",),
            multi_line=(MultiLineRule("=begin", "=end", must_be_at_line_start=True),),
        ),
    ),
    Language("Shell", ("sh", "bash", "zsh"), _HASH),
    Language("YAML", ("yml", "yaml"), _HASH),
    Language("TOML", ("toml",), _HASH),
    Language(
        "SQL",
        ("sql",),
        CommentSyntax(single_line=("--",), multi_line=(MultiLineRule("/*", "*/"),)),
    ),
    Language(
        "Haskell",
        ("hs",),
        CommentSyntax(
            single_line=("--",),
            multi_line=(MultiLineRule("{-", "-}", supports_nesting=True),),
        ),
    ),
    Language(
        "HTML",
        ("html", "htm", "vue", "svelte", "xml"),
        CommentSyntax(
            single_line=("//",),
            multi_line=(MultiLineRule("<!--", "-->"), MultiLineRule("/*", "*/")),
        ),
    ),
    Language(
        "CSS",
        ("css", "scss", "less"),
        CommentSyntax(single_line=("//",), multi_line=(MultiLineRule("/*", "*/"),)),
    ),
)


class LanguageRegistry:
    """Immutable after construction; extension lookup is a dict read."""

    def __init__(self, languages: Iterable[Language] = ()) -> None:
        self._languages: list[Language] = []
        self._by_extension: dict[str, Language] = {}
        for language in languages:
            self.register(language)

    def register(self, language: Language) -> None:
        self._languages.append(language)
        for ext in language.extensions:
            self._by_extension[ext.lstrip(".").lower()] = language

    def by_extension(self, ext: str) -> Language | None:
        return self._by_extension.get(ext.lstrip(".").lower())

    def languages(self) -> list[Language]:
        return list(self._languages)

    @classmethod
    def default(cls) -> "LanguageRegistry":
        return cls(_BUILTIN)

    @classmethod
    def with_custom(cls, custom: Mapping[str, object]) -> "LanguageRegistry":
        """Built-ins plus ``[languages.<name>]`` entries, which win per extension."""
        registry = cls(_BUILTIN)
        for name, entry in custom.items():
            registry.register(custom_language(name, entry))
        return registry


def custom_language(name: str, entry: object) -> Language:
    extensions = tuple(getattr(entry, "extensions", ()) or ())
    single = tuple(getattr(entry, "single_line_comments", ()) or ())
    pairs = getattr(entry, "multi_line_comments", ()) or ()
    multi = tuple(MultiLineRule(str(start), str(end)) for start, end in pairs)
    return Language(name, extensions, CommentSyntax(single_line=single, multi_line=multi))
