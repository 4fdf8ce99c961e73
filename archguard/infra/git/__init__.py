"""Git subprocess helpers."""

from archguard.infra.git.git import (
    get_repo_root,
    get_staged_content,
    get_staged_diff,
    get_worktree_diff,
    list_staged_files,
    list_tracked_files,
    list_uncommitted_files,
    run_git,
)

__all__ = [
    "get_repo_root",
    "get_staged_content",
    "get_staged_diff",
    "get_worktree_diff",
    "list_staged_files",
    "list_tracked_files",
    "list_uncommitted_files",
    "run_git",
]
