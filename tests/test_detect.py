from __future__ import annotations

from pathlib import Path
import tomllib

import pytest

from sloc_guard.detect import (
    DetectionResult,
    ProjectType,
    Subproject,
    detect_project_type,
    detect_projects,
    render_detected_config,
)


@pytest.mark.parametrize(
    ("marker", "expected"),
    [
        ("Cargo.toml", ProjectType.RUST),
        ("go.mod", ProjectType.GO),
        ("package.json", ProjectType.NODE),
        ("requirements.txt", ProjectType.PYTHON),
        ("build.gradle.kts", ProjectType.JAVA),
        ("App.CSPROJ", ProjectType.CSHARP),
    ],
)
def test_marker_files(tmp_path: Path, marker: str, expected: ProjectType) -> None:
    (tmp_path / marker).write_text("", encoding="utf-8")
    assert detect_project_type(tmp_path) is expected


def test_first_marker_in_order_wins(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text("{}", encoding="utf-8")
    (tmp_path / "go.mod").write_text("module x\n", encoding="utf-8")
    assert detect_project_type(tmp_path) is ProjectType.GO


def test_no_marker(tmp_path: Path) -> None:
    assert detect_project_type(tmp_path) is None
    result = detect_projects(tmp_path)
    assert result.effective_type is ProjectType.UNKNOWN
    assert result.describe() == ["No project markers detected, using generic defaults"]


def test_monorepo_skips_hidden_and_build_dirs(tmp_path: Path) -> None:
    for name, marker in [
        ("api", "go.mod"),
        ("web", "package.json"),
        ("node_modules", "package.json"),
        (".cache", "Cargo.toml"),
        ("docs", "README.md"),
    ]:
        (tmp_path / name).mkdir()
        (tmp_path / name / marker).write_text("", encoding="utf-8")

    result = detect_projects(tmp_path)
    assert result.root is None
    assert result.subprojects == [
        Subproject("api", ProjectType.GO),
        Subproject("web", ProjectType.NODE),
    ]
    assert result.describe()[0] == "Detected monorepo with 2 subprojects:"


def test_rendered_config_is_loadable_toml() -> None:
    result = DetectionResult(
        root=ProjectType.PYTHON,
        subprojects=[Subproject("frontend", ProjectType.NODE)],
    )
    parsed = tomllib.loads(render_detected_config(result))
    assert parsed["version"] == "2"
    assert parsed["content"]["extensions"] == ["py", "pyi"]
    assert parsed["content"]["max_lines"] == 500
    assert parsed["content"]["rules"] == [{"pattern": "frontend/**", "max_lines": 400}]
    assert "**/node_modules/**" in parsed["scanner"]["exclude"]
    assert "**/__pycache__/**" in parsed["scanner"]["exclude"]


def test_monorepo_without_root_unions_extensions() -> None:
    result = DetectionResult(
        subprojects=[Subproject("svc", ProjectType.GO), Subproject("tool", ProjectType.RUST)]
    )
    parsed = tomllib.loads(render_detected_config(result))
    assert parsed["content"]["extensions"] == ["go", "rs"]
    assert parsed["content"]["max_lines"] == 500
