"""ContentPort implementations backed by git and the working tree.

- WorktreeContent:   files with unstaged changes; disk content; worktree diff
- StagedContent:     files with staged changes; index content; staged diff
- TrackedContent:    every tracked file; disk content; worktree diff
- SingleFileContent: one explicit path; disk content; worktree diff

All paths are relative to *root* (the repository top level).
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from archguard.infra.git import git
from archguard.ports.content_port import ContentPort
from archguard.shared.errors import ContentError


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise ContentError(str(exc), path=str(path)) from exc


class _GitContent(ContentPort):
    """Shared disk-read and worktree-diff behavior."""

    def __init__(self, root: str | Path | None = None) -> None:
        self._root = Path(root) if root is not None else None

    @property
    def root(self) -> Path | None:
        return self._root

    def _resolve(self, path: str) -> Path:
        return self._root / path if self._root is not None else Path(path)

    async def get_content(self, path: str) -> str:
        return await asyncio.to_thread(_read_text, self._resolve(path))

    async def get_diff(self, path: str) -> str:
        return await git.get_worktree_diff(path, cwd=self._root)


class WorktreeContent(_GitContent):
    """Default scan: uncommitted worktree changes."""

    async def list_files(self) -> list[str]:
        return await git.list_uncommitted_files(cwd=self._root)


class StagedContent(_GitContent):
    """Pre-commit scan: what is about to be committed."""

    async def list_files(self) -> list[str]:
        return await git.list_staged_files(cwd=self._root)

    async def get_content(self, path: str) -> str:
        return await git.get_staged_content(path, cwd=self._root)

    async def get_diff(self, path: str) -> str:
        return await git.get_staged_diff(path, cwd=self._root)


class TrackedContent(_GitContent):
    """Full scan of every tracked file."""

    async def list_files(self) -> list[str]:
        return await git.list_tracked_files(cwd=self._root)


class SingleFileContent(_GitContent):
    """Scan of one explicitly named file."""

    def __init__(self, path: str, root: str | Path | None = None) -> None:
        super().__init__(root)
        self._path = path

    async def list_files(self) -> list[str]:
        return [self._path]
