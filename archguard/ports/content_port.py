"""ContentPort - source of files under analysis.

Implementations decide which files to scan (worktree changes, staged
changes, all tracked files, one explicit path) and where their content and
diffs come from.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ContentPort(ABC):
    """Port: file listing, content and diff retrieval."""

    @abstractmethod
    async def list_files(self) -> list[str]:
        """Return repository-relative paths to analyze, in a stable order."""

    @abstractmethod
    async def get_content(self, path: str) -> str:
        """Return the full text of *path*.

        Raises:
            ContentError: If the file cannot be read.
        """

    @abstractmethod
    async def get_diff(self, path: str) -> str:
        """Return a diff for *path*; an empty string means no diff is available."""
