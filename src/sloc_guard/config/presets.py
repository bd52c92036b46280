"""Built-in presets usable as ``extends = "preset:<name>"``."""

from __future__ import annotations

from sloc_guard.config.toml_io import TomlTable, parse_toml
from sloc_guard.errors import ConfigError

PRESET_PREFIX = "preset:"

_RUST_STRICT = """
version = "2"

[scanner]
exclude = [".git/**", "target/**", "vendor/**", "*.generated.rs", "benches/**"]

[content]
extensions = ["rs"]
max_lines = 600
warn_threshold = 0.85
skip_comments = true
skip_blank = true

[[content.rules]]
pattern = "**/*_test.rs"
max_lines = 1000
reason = "Test files need more space for fixtures and assertions"

[[content.rules]]
pattern = "**/*_tests.rs"
max_lines = 1000
reason = "Test files need more space for fixtures and assertions"

[[content.rules]]
pattern = "**/tests/**/*.rs"
max_lines = 1000
reason = "Integration test files need more space"

[[content.rules]]
pattern = "**/examples/**/*.rs"
max_lines = 800
reason = "Example files may be more verbose for clarity"

[structure]
max_files = 20
max_subdirs = 10
warn_threshold = 0.9
deny_files = ["*.bak", "*.tmp", ".DS_Store", "Thumbs.db"]
deny_extensions = [".exe", ".dll", ".so", ".dylib"]

[[structure.rules]]
scope = "tests/**"
max_files = 50
max_subdirs = 15
reason = "Test directories often have more files"
"""

_NODE_STRICT = """
version = "2"

[scanner]
exclude = [
    ".git/**", "node_modules/**", "dist/**", "build/**", ".next/**",
    "coverage/**", ".nuxt/**", ".output/**", ".cache/**", ".parcel-cache/**",
]

[content]
extensions = ["js", "jsx", "ts", "tsx", "mjs", "cjs", "vue", "svelte"]
max_lines = 600
warn_threshold = 0.85
skip_comments = true
skip_blank = true

[[content.rules]]
pattern = "**/*.test.{js,jsx,ts,tsx}"
max_lines = 1000
reason = "Test files need more space for fixtures and assertions"

[[content.rules]]
pattern = "**/*.spec.{js,jsx,ts,tsx}"
max_lines = 1000
reason = "Test files need more space for fixtures and assertions"

[[content.rules]]
pattern = "**/__tests__/**/*.{js,jsx,ts,tsx}"
max_lines = 1000
reason = "Test files need more space for fixtures and assertions"

[[content.rules]]
pattern = "**/*.stories.{js,jsx,ts,tsx}"
max_lines = 800
reason = "Storybook stories may include multiple variants"

[structure]
max_files = 25
max_subdirs = 15
warn_threshold = 0.9
deny_files = ["*.bak", "*.tmp", ".DS_Store", "Thumbs.db", "npm-debug.log*", "yarn-error.log"]
deny_extensions = [".exe", ".dll"]

[[structure.rules]]
scope = "__tests__/**"
max_files = 50
max_subdirs = 20
reason = "Test directories often have more files"

[[structure.rules]]
scope = "src/components/**"
max_files = 40
reason = "UI component directories may have many related files"
"""

_PYTHON_STRICT = """
version = "2"

[scanner]
exclude = [
    ".git/**", "__pycache__/**", ".venv/**", "venv/**", "env/**",
    ".tox/**", "*.egg-info/**", ".pytest_cache/**", ".mypy_cache/**",
    ".ruff_cache/**", "htmlcov/**", ".coverage", "dist/**", "build/**",
]

[content]
extensions = ["py", "pyi"]
max_lines = 600
warn_threshold = 0.85
skip_comments = true
skip_blank = true

[[content.rules]]
pattern = "**/test_*.py"
max_lines = 1000
reason = "Test files need more space for fixtures and assertions"

[[content.rules]]
pattern = "**/tests/**/*.py"
max_lines = 1000
reason = "Test files need more space for fixtures and assertions"

[[content.rules]]
pattern = "**/conftest.py"
max_lines = 800
reason = "Conftest files contain shared fixtures"

[[content.rules]]
pattern = "**/migrations/**/*.py"
max_lines = 1500
reason = "Database migrations may be auto-generated and verbose"

[structure]
max_files = 20
max_subdirs = 10
warn_threshold = 0.9
deny_files = ["*.bak", "*.tmp", ".DS_Store", "Thumbs.db", "*.pyc"]
deny_extensions = [".exe", ".dll", ".so"]
deny_dirs = ["__pycache__"]

[[structure.rules]]
scope = "tests/**"
max_files = 50
max_subdirs = 20
reason = "Test directories often have more files"
"""

_GO_STRICT = """
version = "2"

[scanner]
exclude = [".git/**", "vendor/**", "bin/**", "dist/**", "testdata/**", ".idea/**", ".vscode/**"]

[content]
extensions = ["go"]
max_lines = 600
warn_threshold = 0.85
skip_comments = true
skip_blank = true

[[content.rules]]
pattern = "**/*_test.go"
max_lines = 1000
reason = "Test files need more space for table-driven tests and fixtures"

[[content.rules]]
pattern = "**/cmd/**/*.go"
max_lines = 400
reason = "Command entry points should be concise"

[[content.rules]]
pattern = "**/*.pb.go"
max_lines = 5000
reason = "Generated protobuf files are auto-generated"

[structure]
max_files = 20
max_subdirs = 10
warn_threshold = 0.9
deny_files = ["*.bak", "*.tmp", ".DS_Store", "Thumbs.db"]
deny_extensions = [".exe", ".dll", ".so", ".dylib"]

[[structure.rules]]
scope = "internal/**"
max_files = 30
max_subdirs = 20
reason = "Internal packages may have deeper structure"
"""

_MONOREPO_BASE = """
version = "2"

[scanner]
exclude = [
    ".git/**", "target/**", "vendor/**", "node_modules/**", "dist/**", "build/**",
    ".next/**", "__pycache__/**", ".venv/**", "venv/**", "*.egg-info/**",
    "coverage/**", ".cache/**",
]

[content]
extensions = ["rs", "js", "jsx", "ts", "tsx", "py", "go", "java", "kt", "swift", "vue", "svelte"]
max_lines = 600
warn_threshold = 0.85
skip_comments = true
skip_blank = true

[[content.rules]]
pattern = "**/*_test.{rs,go,py}"
max_lines = 1000
reason = "Test files need more space"

[[content.rules]]
pattern = "**/*.{test,spec}.{js,jsx,ts,tsx}"
max_lines = 1000
reason = "Test files need more space"

[[content.rules]]
pattern = "**/test_*.py"
max_lines = 1000
reason = "Test files need more space"

[structure]
max_files = 30
max_subdirs = 20
warn_threshold = 0.9
deny_files = ["*.bak", "*.tmp", ".DS_Store", "Thumbs.db"]
deny_extensions = [".exe", ".dll", ".so", ".dylib"]

[[structure.rules]]
scope = "{tests,test,__tests__}/**"
max_files = 50
max_subdirs = 25
reason = "Test directories often have more files"
"""

PRESETS: dict[str, str] = {
    "rust-strict": _RUST_STRICT,
    "node-strict": _NODE_STRICT,
    "python-strict": _PYTHON_STRICT,
    "go-strict": _GO_STRICT,
    "monorepo-base": _MONOREPO_BASE,
}


def available_presets() -> list[str]:
    return list(PRESETS)


def preset_text(name: str) -> str:
    try:
        return PRESETS[name]
    except KeyError:
        raise ConfigError(
            f"Unknown preset: '{name}'. Available presets: {', '.join(PRESETS)}"
        ) from None


def load_preset(name: str) -> TomlTable:
    return parse_toml(preset_text(name), origin=f"{PRESET_PREFIX}{name}")
