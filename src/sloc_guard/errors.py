"""Error protocol for sloc-guard.

Every fatal condition is a ``SlocGuardError`` subclass. Each one exposes a
short ``error_type`` tag, a single-line ``message``, an optional ``detail``
and a one-line actionable ``suggestion``. All of them map to exit code 2.
"""

from __future__ import annotations

from pathlib import Path

EXIT_CONFIG_ERROR = 2


class SlocGuardError(Exception):
    error_type = "Error"
    exit_code = EXIT_CONFIG_ERROR

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    @property
    def suggestion(self) -> str | None:
        return None

    def render(self) -> list[str]:
        lines = [f"{self.error_type}: {self.message}"]
        if self.detail:
            lines.append(f"  {self.detail}")
        suggestion = self.suggestion
        if suggestion:
            lines.append(f"  hint: {suggestion}")
        return lines


class ConfigError(SlocGuardError):
    error_type = "Config"

    @property
    def suggestion(self) -> str | None:
        return "Check the config file format and value ranges in .sloc-guard.toml"


class TomlSyntaxError(SlocGuardError):
    error_type = "Syntax"

    def __init__(
        self,
        *,
        origin: str,
        line: int | None,
        column: int | None,
        parser_message: str,
    ) -> None:
        location = origin
        if line is not None:
            location = f"{origin}:{line}"
            if column is not None:
                location = f"{location}:{column}"
        super().__init__(f"TOML parse error at {location}", detail=parser_message)
        self.origin = origin
        self.line = line
        self.column = column
        self.parser_message = parser_message

    @property
    def suggestion(self) -> str | None:
        return "Check TOML syntax near the reported line: quotes, brackets and table headers"


class TypeMismatchError(SlocGuardError):
    error_type = "TypeMismatch"

    def __init__(
        self,
        *,
        field: str,
        expected: str,
        actual: str,
        origin: str | None = None,
    ) -> None:
        message = f"'{field}' expected {expected}, found {actual}"
        detail = f"in {origin}" if origin else None
        super().__init__(message, detail=detail)
        self.field = field
        self.expected = expected
        self.actual = actual
        self.origin = origin

    @property
    def suggestion(self) -> str | None:
        return f"Change '{self.field}' to a value of type {self.expected}"


class SemanticError(SlocGuardError):
    error_type = "Semantic"

    def __init__(
        self,
        *,
        field: str,
        message: str,
        suggestion: str | None = None,
        origin: str | None = None,
    ) -> None:
        detail = f"in {origin}" if origin else None
        super().__init__(f"{field}: {message}", detail=detail)
        self.field = field
        self.origin = origin
        self._suggestion = suggestion

    @property
    def suggestion(self) -> str | None:
        return self._suggestion


class CircularExtendsError(SlocGuardError):
    error_type = "CircularExtends"

    def __init__(self, chain: list[str]) -> None:
        super().__init__(
            "Circular extends detected",
            detail=" -> ".join(chain),
        )
        self.chain = list(chain)

    @property
    def suggestion(self) -> str | None:
        return "Remove one of the 'extends' references so the chain ends at a preset or a standalone config"


class ExtendsTooDeepError(SlocGuardError):
    error_type = "ExtendsTooDeep"

    def __init__(self, *, depth: int, max_depth: int, chain: list[str]) -> None:
        super().__init__(
            f"Extends chain too deep ({depth} > {max_depth})",
            detail=" -> ".join(chain),
        )
        self.depth = depth
        self.max_depth = max_depth
        self.chain = list(chain)

    @property
    def suggestion(self) -> str | None:
        return f"Flatten the extends chain to at most {self.max_depth} levels"


class ExtendsResolutionError(SlocGuardError):
    error_type = "ExtendsResolution"

    def __init__(self, *, path: str, base: str) -> None:
        super().__init__(f"Cannot resolve extends path '{path}' relative to {base}")
        self.path = path
        self.base = base

    @property
    def suggestion(self) -> str | None:
        return "Use an absolute URL or a preset when extending from a remote config"


class InvalidPatternError(SlocGuardError):
    error_type = "InvalidPattern"

    def __init__(self, *, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid glob pattern '{pattern}'", detail=reason)
        self.pattern = pattern
        self.reason = reason

    @property
    def suggestion(self) -> str | None:
        return "Check glob pattern syntax: use '*' for wildcards, '**' for recursive matching"


class FileAccessError(SlocGuardError):
    error_type = "FileAccess"

    def __init__(self, *, path: Path | str, operation: str, cause: OSError) -> None:
        super().__init__(
            f"Failed to {operation} '{path}'",
            detail=cause.strerror or str(cause),
        )
        self.path = Path(path)
        self.operation = operation
        self.cause = cause

    @property
    def suggestion(self) -> str | None:
        if isinstance(self.cause, FileNotFoundError):
            return "Check that the path exists and is spelled correctly"
        if isinstance(self.cause, PermissionError):
            return "Check file permissions for the current user"
        return None


class RemoteConfigError(SlocGuardError):
    error_type = "RemoteConfig"

    def __init__(self, *, url: str, reason: str) -> None:
        super().__init__(f"Failed to fetch remote config '{url}'", detail=reason)
        self.url = url
        self.reason = reason

    @property
    def suggestion(self) -> str | None:
        return "Check network access, or run with --extends-policy=offline to use the cached copy"


class RemoteConfigHashMismatchError(SlocGuardError):
    error_type = "RemoteConfigHashMismatch"

    def __init__(self, *, url: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Remote config hash mismatch for '{url}'",
            detail=f"expected {expected}, got {actual}",
        )
        self.url = url
        self.expected = expected
        self.actual = actual

    @property
    def suggestion(self) -> str | None:
        return "Update extends_sha256 in config, or verify the remote config URL is correct"


class GitError(SlocGuardError):
    error_type = "Git"

    @property
    def suggestion(self) -> str | None:
        return "Check that the git reference exists: git rev-parse <ref>"


class GitRepoNotFoundError(GitError):
    error_type = "GitRepoNotFound"

    def __init__(self, path: Path | str) -> None:
        super().__init__(f"Not a git repository: '{path}'")
        self.path = Path(path)

    @property
    def suggestion(self) -> str | None:
        return "Run 'git init' or run the command from inside a git repository"
