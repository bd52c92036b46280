"""Renderers for ``config show``."""

from __future__ import annotations

import json

from sloc_guard.config.model import Config


def render_json(config: Config) -> str:
    return json.dumps(config.model_dump(mode="json"), indent=2) + "\n"


def _fmt(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return json.dumps(value)
    if isinstance(value, list):
        return "[" + ", ".join(_fmt(v) for v in value) + "]"
    return str(value)


def _fields(lines: list[str], values: dict[str, object]) -> None:
    for key, value in values.items():
        if value is None or value == [] or value == {}:
            continue
        lines.append(f"  {key} = {_fmt(value)}")


def render_text(config: Config, origin: str | None = None) -> str:
    lines = ["=== Effective Configuration ===", ""]
    if origin:
        lines.append(f"Sources: {origin}")
        lines.append("")

    lines.append("[scanner]")
    _fields(lines, {"gitignore": config.scanner.gitignore, "exclude": config.scanner.exclude})

    content = config.content
    lines += ["", "[content]"]
    _fields(
        lines,
        {
            "max_lines": content.max_lines,
            "extensions": content.extensions,
            "skip_comments": content.skip_comments,
            "skip_blank": content.skip_blank,
            "warn_threshold": content.warn_threshold,
            "warn_at": content.warn_at,
            "exclude": content.exclude,
            "strict": content.strict or None,
        },
    )
    for name, rule in content.languages.items():
        lines += ["", f"[content.languages.{name}]"]
        _fields(lines, rule.model_dump())
    for i, rule in enumerate(content.rules):
        lines += ["", f"[[content.rules]]  # rule {i}"]
        _fields(lines, rule.model_dump(mode="json"))
    for i, override in enumerate(content.overrides):
        lines += ["", f"[[content.overrides]]  # override {i}"]
        _fields(lines, override.model_dump())

    structure = config.structure
    if structure.model_dump(exclude_defaults=True):
        lines += ["", "[structure]"]
        _fields(lines, structure.model_dump(exclude={"rules", "overrides"}))
        for i, srule in enumerate(structure.rules):
            lines += ["", f"[[structure.rules]]  # rule {i}"]
            _fields(lines, srule.model_dump(mode="json", exclude_defaults=True))
        for i, soverride in enumerate(structure.overrides):
            lines += ["", f"[[structure.overrides]]  # override {i}"]
            _fields(lines, soverride.model_dump())

    report = config.stats.report
    if report.model_dump(exclude_defaults=True):
        lines += ["", "[stats.report]"]
        _fields(lines, report.model_dump())

    if config.baseline.ratchet is not None:
        lines += ["", "[baseline]", f"  ratchet = {_fmt(config.baseline.ratchet)}"]

    trend = config.trend
    if trend.model_dump(exclude_defaults=True):
        lines += ["", "[trend]"]
        _fields(lines, trend.model_dump())

    return "\n".join(lines) + "\n"
