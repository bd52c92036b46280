from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable
import subprocess

from sloc_guard.errors import ConfigError, GitError, GitRepoNotFoundError

RunFn = Callable[..., subprocess.CompletedProcess[str]]


@dataclass(frozen=True)
class DiffRange:
    base: str
    target: str = "HEAD"


def parse_diff_range(diff_ref: str) -> DiffRange:
    """``REF`` compares against HEAD; ``BASE..TARGET`` and ``BASE..`` are ranges."""
    if not diff_ref:
        raise ConfigError("--diff requires a git reference")
    base, sep, target = diff_ref.partition("..")
    if not sep:
        return DiffRange(diff_ref)
    if not base:
        raise ConfigError(
            "--diff range requires a base reference (e.g., 'main..feature', not '..feature')"
        )
    return DiffRange(base, target or "HEAD")


def _git(args: list[str], *, cwd: Path, run_fn: RunFn) -> str:
    try:
        proc = run_fn(
            ["git", *args],
            cwd=cwd,
            check=False,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise GitError("git executable not found", detail=str(exc)) from exc
    if proc.returncode != 0:
        message = proc.stderr.strip() or proc.stdout.strip() or f"git {args[0]} failed"
        raise GitError(message)
    return proc.stdout


def repo_toplevel(cwd: Path, *, run_fn: RunFn = subprocess.run) -> Path:
    try:
        out = _git(["rev-parse", "--show-toplevel"], cwd=cwd, run_fn=run_fn)
    except GitError as exc:
        if "not a git repository" in exc.message.lower():
            raise GitRepoNotFoundError(cwd) from exc
        raise
    return Path(out.strip())


def changed_files(
    cwd: Path, diff_ref: str, *, run_fn: RunFn = subprocess.run
) -> set[Path]:
    """Absolute paths of files changed between the two refs of ``diff_ref``."""
    diff_range = parse_diff_range(diff_ref)
    toplevel = repo_toplevel(cwd, run_fn=run_fn)
    out = _git(
        ["diff", "--name-only", f"{diff_range.base}..{diff_range.target}"],
        cwd=toplevel,
        run_fn=run_fn,
    )
    return {
        (toplevel / line.strip()).resolve()
        for line in out.splitlines()
        if line.strip()
    }


def head_commit(cwd: Path, *, run_fn: RunFn = subprocess.run) -> str | None:
    """Short HEAD hash for snapshot labels; ``None`` outside a repository."""
    try:
        return _git(["rev-parse", "--short", "HEAD"], cwd=cwd, run_fn=run_fn).strip() or None
    except GitError:
        return None
