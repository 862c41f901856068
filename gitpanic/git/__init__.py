"""Git integration for GitPanic.

This package wraps the ``git`` executable: repository detection, output
parsing and the primitive operations the recovery core composes.
"""

from gitpanic.git.repository import (
    GitBranch,
    GitCommit,
    GitRepository,
    GitStash,
    GitStatus,
    ReflogEntry,
    ResetMode,
)
from gitpanic.git.utils import (
    find_git_root,
    parse_git_status,
    run_git_command,
)
from gitpanic.errors import GitError, NotARepositoryError

__all__ = [
    # Main class
    "GitRepository",
    # Data classes
    "GitStatus",
    "GitCommit",
    "GitBranch",
    "GitStash",
    "ReflogEntry",
    "ResetMode",
    # Errors
    "GitError",
    "NotARepositoryError",
    # Utility functions
    "find_git_root",
    "run_git_command",
    "parse_git_status",
]
