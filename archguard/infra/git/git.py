"""Async wrappers around the git command line.

- Every call runs `git <args>` as a subprocess in *cwd* (default: process cwd)
- Non-zero exit or a missing git binary raises ContentError
- Cancellation kills the child process before propagating
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from archguard.shared.errors import ContentError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

GIT_BINARY = "git"
DIFF_CONTEXT_LINES = 100


async def run_git(*args: str, cwd: str | Path | None = None) -> str:
    """Run git and return its stdout.

    Raises:
        ContentError: If git cannot be started or exits non-zero.
    """
    logger.debug("git %s", " ".join(args))
    try:
        proc = await asyncio.create_subprocess_exec(
            GIT_BINARY,
            *args,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise ContentError(f"failed to start git: {exc}") from exc

    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
            await asyncio.shield(proc.wait())
        raise

    if proc.returncode != 0:
        detail = stderr.decode("utf-8", errors="replace").strip()
        msg = f"git command failed {list(args)}: exit {proc.returncode}"
        if detail:
            msg += f": {detail}"
        raise ContentError(msg)
    return stdout.decode("utf-8", errors="replace")


async def run_git_lines(*args: str, cwd: str | Path | None = None) -> list[str]:
    """Run git and return its non-blank stdout lines, stripped."""
    out = await run_git(*args, cwd=cwd)
    return [line.strip() for line in out.splitlines() if line.strip()]


async def get_repo_root(cwd: str | Path | None = None) -> str:
    """Absolute path of the enclosing repository's top level."""
    try:
        out = await run_git("rev-parse", "--show-toplevel", cwd=cwd)
    except ContentError as exc:
        raise ContentError(f"failed to find git root (are you in a git repo?): {exc}") from exc
    return out.strip()


async def list_staged_files(cwd: str | Path | None = None) -> list[str]:
    """Files added, copied, modified or renamed in the index."""
    return await run_git_lines("diff", "--cached", "--name-only", "--diff-filter=ACMR", cwd=cwd)


async def list_uncommitted_files(cwd: str | Path | None = None) -> list[str]:
    """Files with worktree changes relative to the index."""
    return await run_git_lines("diff", "--name-only", "--diff-filter=ACMR", cwd=cwd)


async def list_tracked_files(cwd: str | Path | None = None) -> list[str]:
    return await run_git_lines("ls-files", cwd=cwd)


async def get_staged_content(path: str, cwd: str | Path | None = None) -> str:
    """Index version of *path* (`git show :<path>`)."""
    try:
        return await run_git("show", f":{path}", cwd=cwd)
    except ContentError as exc:
        raise ContentError(f"failed to get staged content for {path}: {exc}", path=path) from exc


async def get_staged_diff(path: str, cwd: str | Path | None = None) -> str:
    try:
        return await run_git(
            "diff", "--cached", f"--unified={DIFF_CONTEXT_LINES}", "--", path, cwd=cwd
        )
    except ContentError as exc:
        raise ContentError(f"failed to get staged diff for {path}: {exc}", path=path) from exc


async def get_worktree_diff(path: str, cwd: str | Path | None = None) -> str:
    try:
        return await run_git("diff", f"--unified={DIFF_CONTEXT_LINES}", "--", path, cwd=cwd)
    except ContentError as exc:
        raise ContentError(f"failed to get worktree diff for {path}: {exc}", path=path) from exc
