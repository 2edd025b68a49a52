# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Best-effort git bookkeeping for backups and rollback logs.

Each step (status, add, commit, push) yields a StepResult. Nothing in
here raises: by the time this runs the backup or rollback is already
done, and a git problem only ever becomes a warning.
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Tuple

import structlog

from s3state.config import StateConfig

logger = structlog.get_logger()


@dataclass
class StepResult:
    """Outcome of one version-control step."""

    step: str
    ok: bool
    detail: str = ""
    skipped: bool = False

    @property
    def warning(self) -> str | None:
        if self.ok:
            return None
        if self.skipped:
            return f"git {self.step} skipped: {self.detail}"
        return f"git {self.step} failed: {self.detail}"


async def _run_git(cwd: Path, *args: str) -> Tuple[int, str]:
    """Run git and return (exit code, combined output)."""
    try:
        proc = await asyncio.create_subprocess_exec(
            "git",
            *args,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        out, _ = await proc.communicate()
    except (FileNotFoundError, OSError) as e:
        return (127, str(e))
    return (proc.returncode or 0, out.decode("utf-8", errors="replace").strip())


async def commit_and_push(
    config: StateConfig,
    paths: Sequence[Path],
    message: str,
) -> List[StepResult]:
    """
    Stage paths, commit them as one commit and push.

    Stops early (successfully) when there is nothing to commit. A failed
    step marks the remaining ones as skipped. The local commit is kept
    when only the push fails.

    Args:
        config: State configuration (project_root, git_remote, git_branch)
        paths: Files or directories to stage
        message: Commit message

    Returns:
        One StepResult per attempted or skipped step
    """
    cwd = config.project_root
    pathspec = [str(p) for p in paths]
    results: List[StepResult] = []

    def skip_rest(steps: List[str], reason: str) -> None:
        for step in steps:
            results.append(StepResult(step=step, ok=False, detail=reason, skipped=True))

    code, out = await _run_git(cwd, "status", "--porcelain", "--", *pathspec)
    if code != 0:
        results.append(StepResult(step="status", ok=False, detail=out or f"exit {code}"))
        skip_rest(["add", "commit", "push"], "git status failed")
        _log_results(results)
        return results
    if not out:
        results.append(StepResult(step="status", ok=True, detail="nothing to commit"))
        _log_results(results)
        return results
    results.append(StepResult(step="status", ok=True))

    code, out = await _run_git(cwd, "add", "--", *pathspec)
    if code != 0:
        results.append(StepResult(step="add", ok=False, detail=out or f"exit {code}"))
        skip_rest(["commit", "push"], "git add failed")
        _log_results(results)
        return results
    results.append(StepResult(step="add", ok=True))

    code, out = await _run_git(cwd, "commit", "-m", message, "--", *pathspec)
    if code != 0:
        results.append(StepResult(step="commit", ok=False, detail=out or f"exit {code}"))
        skip_rest(["push"], "git commit failed")
        _log_results(results)
        return results
    results.append(StepResult(step="commit", ok=True, detail=message))

    code, out = await _run_git(
        cwd, "push", config.git_remote, f"HEAD:{config.git_branch}"
    )
    if code != 0:
        code, out = await _run_git(cwd, "push")
    if code != 0:
        results.append(
            StepResult(
                step="push",
                ok=False,
                detail=f"committed locally but could not push: {out or f'exit {code}'}",
            )
        )
    else:
        results.append(StepResult(step="push", ok=True))

    _log_results(results)
    return results


def _log_results(results: List[StepResult]) -> None:
    for r in results:
        if r.ok:
            logger.debug("git_step_ok", step=r.step, detail=r.detail)
        else:
            logger.warning("git_step_failed", step=r.step, detail=r.detail, skipped=r.skipped)
