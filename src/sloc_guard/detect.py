"""Project type detection for ``init --detect``.

A directory is classified by the build files it holds. The scan root and
its immediate subdirectories are checked; any subdirectory with its own
marker turns the result into a monorepo with one content rule per
subproject.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from sloc_guard.config.model import CONFIG_VERSION, DEFAULT_EXTENSIONS, DEFAULT_WARN_THRESHOLD
from sloc_guard.errors import FileAccessError


class ProjectType(str, Enum):
    RUST = "rust"
    NODE = "node"
    GO = "go"
    PYTHON = "python"
    JAVA = "java"
    CSHARP = "csharp"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def extensions(self) -> list[str]:
        return list(_EXTENSIONS[self])

    @property
    def max_lines(self) -> int:
        return _MAX_LINES[self]

    @property
    def excludes(self) -> list[str]:
        return list(_EXCLUDES.get(self, ()))


_DISPLAY_NAMES = {
    ProjectType.RUST: "Rust",
    ProjectType.NODE: "Node.js/TypeScript",
    ProjectType.GO: "Go",
    ProjectType.PYTHON: "Python",
    ProjectType.JAVA: "Java/Kotlin",
    ProjectType.CSHARP: "C#/.NET",
    ProjectType.UNKNOWN: "Unknown",
}

_EXTENSIONS = {
    ProjectType.RUST: ("rs",),
    ProjectType.NODE: ("ts", "tsx", "js", "jsx", "mjs", "cjs"),
    ProjectType.GO: ("go",),
    ProjectType.PYTHON: ("py", "pyi"),
    ProjectType.JAVA: ("java", "kt"),
    ProjectType.CSHARP: ("cs",),
    ProjectType.UNKNOWN: tuple(DEFAULT_EXTENSIONS),
}

_MAX_LINES = {
    ProjectType.RUST: 800,
    ProjectType.NODE: 400,
    ProjectType.GO: 600,
    ProjectType.PYTHON: 500,
    ProjectType.JAVA: 500,
    ProjectType.CSHARP: 600,
    ProjectType.UNKNOWN: 500,
}

_EXCLUDES = {
    ProjectType.RUST: ("**/target/**",),
    ProjectType.NODE: ("**/node_modules/**", "**/dist/**", "**/build/**"),
    ProjectType.GO: ("**/vendor/**",),
    ProjectType.PYTHON: ("**/__pycache__/**", "**/.venv/**", "**/venv/**", "**/.tox/**"),
    ProjectType.JAVA: ("**/target/**", "**/build/**"),
    ProjectType.CSHARP: ("**/bin/**", "**/obj/**"),
}

# Checked in order; the first type with a marker present wins.
_MARKERS: tuple[tuple[ProjectType, tuple[str, ...]], ...] = (
    (ProjectType.RUST, ("Cargo.toml",)),
    (ProjectType.GO, ("go.mod",)),
    (ProjectType.NODE, ("package.json",)),
    (ProjectType.PYTHON, ("pyproject.toml", "setup.py", "requirements.txt", "Pipfile")),
    (ProjectType.JAVA, ("pom.xml", "build.gradle", "build.gradle.kts")),
)
_CSHARP_SUFFIXES = (".csproj", ".sln")

_SKIPPED_DIRS = frozenset(
    {
        "node_modules",
        "target",
        "vendor",
        "dist",
        "build",
        "__pycache__",
        ".venv",
        "venv",
        "bin",
        "obj",
        "packages",
    }
)


@dataclass(frozen=True)
class Subproject:
    path: str
    project_type: ProjectType


@dataclass
class DetectionResult:
    root: ProjectType | None = None
    subprojects: list[Subproject] = field(default_factory=list)

    @property
    def is_monorepo(self) -> bool:
        return bool(self.subprojects)

    @property
    def effective_type(self) -> ProjectType:
        return self.root if self.root is not None else ProjectType.UNKNOWN

    def describe(self) -> list[str]:
        lines: list[str] = []
        if self.root is not None:
            lines.append(f"Detected root project: {self.root.display_name}")
        if self.is_monorepo:
            lines.append(f"Detected monorepo with {len(self.subprojects)} subprojects:")
            lines.extend(f"  - {s.path}: {s.project_type.display_name}" for s in self.subprojects)
        if not lines:
            lines.append("No project markers detected, using generic defaults")
        return lines


def detect_project_type(directory: Path) -> ProjectType | None:
    for project_type, markers in _MARKERS:
        if any((directory / marker).exists() for marker in markers):
            return project_type
    try:
        for entry in directory.iterdir():
            if entry.is_file() and entry.suffix.lower() in _CSHARP_SUFFIXES:
                return ProjectType.CSHARP
    except OSError:
        return None
    return None


def detect_projects(root: Path) -> DetectionResult:
    try:
        children = sorted(p for p in root.iterdir() if p.is_dir())
    except OSError as exc:
        raise FileAccessError(path=root, operation="scan for project markers", cause=exc) from exc
    result = DetectionResult(root=detect_project_type(root))
    for child in children:
        if child.name.startswith(".") or child.name in _SKIPPED_DIRS:
            continue
        found = detect_project_type(child)
        if found is not None:
            result.subprojects.append(Subproject(child.name, found))
    return result


def _toml_list(values: list[str]) -> str:
    return "[" + ", ".join(f'"{v}"' for v in values) + "]"


def render_detected_config(result: DetectionResult) -> str:
    """Starter config text tuned to the detected project layout."""
    if result.is_monorepo:
        detected = "Monorepo"
    elif result.root is not None:
        detected = f"{result.root.display_name} project"
    else:
        detected = "Unknown project type"

    excludes = {"**/.git/**"}
    if result.root is not None:
        excludes.update(result.root.excludes)
    for sub in result.subprojects:
        excludes.update(sub.project_type.excludes)

    effective = result.effective_type
    extensions = effective.extensions
    if result.root is None and result.is_monorepo:
        extensions = list(
            dict.fromkeys(ext for sub in result.subprojects for ext in sub.project_type.extensions)
        )
    lines = [
        "# sloc-guard configuration file",
        f"# Detected: {detected}",
        "",
        f'version = "{CONFIG_VERSION}"',
        "",
        "[scanner]",
        "gitignore = true",
        "exclude = [",
        *(f'    "{pattern}",' for pattern in sorted(excludes)),
        "]",
        "",
        "[content]",
        f"extensions = {_toml_list(extensions)}",
        f"max_lines = {effective.max_lines}",
        f"warn_threshold = {DEFAULT_WARN_THRESHOLD}",
        "skip_comments = true",
        "skip_blank = true",
    ]
    if result.is_monorepo:
        lines += ["", "# Per-subproject limits"]
        for sub in result.subprojects:
            lines += [
                "",
                f"# {sub.path} ({sub.project_type.display_name})",
                "[[content.rules]]",
                f'pattern = "{sub.path}/**"',
                f"max_lines = {sub.project_type.max_lines}",
            ]
    lines += [
        "",
        "# [structure]",
        "# max_files = 30",
        "# max_subdirs = 10",
    ]
    return "\n".join(lines) + "\n"
