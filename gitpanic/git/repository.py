"""Git repository primitives for GitPanic.

Each method maps onto one ``git`` invocation (or a tiny fixed group of
them). Nothing here decides whether an operation is safe; that is the
job of the recovery core built on top.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from pathlib import Path
from typing import Optional

from gitpanic.errors import GitError, NotARepositoryError
from gitpanic.git.utils import (
    COMMIT_FORMAT,
    FIELD_SEP,
    REFLOG_FORMAT,
    STASH_FORMAT,
    find_git_root,
    parse_clean_dry_run,
    parse_commit_line,
    parse_git_status,
    parse_name_only_log,
    parse_reflog_line,
    parse_stash_line,
    run_git_command,
)

logger = logging.getLogger(__name__)

__all__ = [
    "GitRepository",
    "GitStatus",
    "GitCommit",
    "GitBranch",
    "GitStash",
    "ReflogEntry",
    "ResetMode",
    "GitError",
]


class ResetMode(str, Enum):
    """How ``git reset`` treats the index and working tree."""

    SOFT = "soft"
    MIXED = "mixed"
    HARD = "hard"


@dataclass
class GitStatus:
    """Represents the current git repository status."""

    branch: Optional[str]  # None when HEAD is detached
    is_clean: bool
    staged: list[tuple[str, str]] = field(default_factory=list)  # (status, filename)
    modified: list[str] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    conflicted: list[str] = field(default_factory=list)
    ahead: int = 0
    behind: int = 0
    upstream: Optional[str] = None

    @property
    def staged_files(self) -> list[str]:
        """Staged paths without their status letters."""
        return [name for _, name in self.staged]


@dataclass(frozen=True)
class GitCommit:
    """Represents a git commit. Identity is the hash."""

    hash: str
    short_hash: str
    author: str
    email: str
    date: str
    message: str

    def one_line(self) -> str:
        """Get a one-line representation."""
        return f"{self.short_hash} {self.message[:60]}{'...' if len(self.message) > 60 else ''}"


@dataclass
class GitBranch:
    """Represents a local git branch."""

    name: str
    is_current: bool = False
    tracking: Optional[str] = None
    commit_hash: Optional[str] = None


@dataclass(frozen=True)
class GitStash:
    """Represents a git stash entry."""

    index: int
    branch: str
    message: str
    hash: Optional[str] = None

    @property
    def ref(self) -> str:
        return f"stash@{{{self.index}}}"

    def one_line(self) -> str:
        """Get a one-line representation."""
        return f"{self.ref}: On {self.branch}: {self.message}"


@dataclass(frozen=True)
class ReflogEntry:
    """One entry of the HEAD reflog, newest entries first."""

    hash: str
    selector: str  # e.g. HEAD@{3}
    action: str  # e.g. "checkout", "commit", "reset"
    message: str


class GitRepository:
    """Represents a Git repository with primitive operations."""

    def __init__(self, path: Path | str):
        """Initialize a GitRepository.

        Args:
            path: Path to the repository root.

        Raises:
            NotARepositoryError: If path has no .git entry.
        """
        self.path = Path(path).resolve()

        if not (self.path / ".git").exists():
            raise NotARepositoryError(str(self.path))

    @classmethod
    def find(cls, start_path: Path | str) -> Optional["GitRepository"]:
        """Find a git repository from a starting path.

        Args:
            start_path: Path to start searching from.

        Returns:
            GitRepository instance, or None if not found.
        """
        root = find_git_root(start_path)
        if root:
            return cls(root)
        return None

    @classmethod
    def open(cls, start_path: Path | str) -> "GitRepository":
        """Like find(), but raise NotARepositoryError instead of returning None."""
        repo = cls.find(start_path)
        if repo is None:
            raise NotARepositoryError(str(Path(start_path).resolve()))
        return repo

    def _run(self, args: list[str], **kwargs) -> str:
        """Run a git command in this repository.

        Args:
            args: Git command arguments.
            **kwargs: Additional arguments to run_git_command.

        Returns:
            Command stdout.
        """
        result = run_git_command(args, cwd=self.path, **kwargs)
        return result.stdout.strip()

    def _succeeds(self, args: list[str]) -> bool:
        """Run a query command and report whether it exited with status 0."""
        result = run_git_command(args, cwd=self.path, check=False)
        return result.returncode == 0

    @cached_property
    def git_dir(self) -> Path:
        """Absolute path of the git directory (handles worktrees and .git files)."""
        output = self._run(["rev-parse", "--git-dir"])
        git_dir = Path(output)
        if not git_dir.is_absolute():
            git_dir = self.path / git_dir
        return git_dir.resolve()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_status(self) -> GitStatus:
        """Get the current repository status.

        Returns:
            GitStatus with current state.
        """
        branch = self.get_current_branch()

        # Get upstream tracking info
        upstream = self.get_upstream()
        ahead = 0
        behind = 0
        if upstream:
            ahead, behind = self.ahead_behind(upstream)

        # Get porcelain status
        status_output = run_git_command(
            ["status", "--porcelain=v1", "-z"],
            cwd=self.path,
        ).stdout
        parsed = parse_git_status(status_output)

        is_clean = not any([
            parsed["staged"],
            parsed["modified"],
            parsed["untracked"],
            parsed["deleted"],
            parsed["conflicted"],
        ])

        return GitStatus(
            branch=branch,
            is_clean=is_clean,
            staged=parsed["staged"],
            modified=parsed["modified"],
            untracked=parsed["untracked"],
            deleted=parsed["deleted"],
            conflicted=parsed["conflicted"],
            ahead=ahead,
            behind=behind,
            upstream=upstream,
        )

    def get_current_branch(self) -> Optional[str]:
        """Get current branch name.

        Returns:
            Branch name, or None in detached HEAD state. An unborn branch
            (repository without commits) still reports its name.
        """
        result = run_git_command(
            ["symbolic-ref", "--quiet", "--short", "HEAD"],
            cwd=self.path,
            check=False,
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def get_head_hash(self) -> Optional[str]:
        """Full hash of HEAD, or None if the repository has no commits."""
        return self.rev_parse("HEAD")

    def rev_parse(self, ref: str) -> Optional[str]:
        """Resolve ref to a commit hash, or None if it does not resolve."""
        result = run_git_command(
            ["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"],
            cwd=self.path,
            check=False,
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """True if ancestor is reachable from (or equal to) descendant."""
        return self._succeeds(["merge-base", "--is-ancestor", ancestor, descendant])

    def get_upstream(self) -> Optional[str]:
        """Short name of the current branch's upstream, or None."""
        result = run_git_command(
            ["rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{upstream}"],
            cwd=self.path,
            check=False,
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def ahead_behind(self, upstream: str) -> tuple[int, int]:
        """Return (ahead, behind) commit counts of HEAD relative to upstream."""
        try:
            counts = self._run(["rev-list", "--left-right", "--count", f"{upstream}...HEAD"])
        except GitError:
            return 0, 0
        parts = counts.split()
        if len(parts) != 2:
            return 0, 0
        behind, ahead = int(parts[0]), int(parts[1])
        return ahead, behind

    def get_log(
        self,
        limit: Optional[int] = 10,
        ref: str = "HEAD",
        file: Optional[str] = None,
    ) -> list[GitCommit]:
        """Get commit history, newest first.

        Args:
            limit: Maximum number of commits (None for no limit).
            ref: Revision or range to walk (e.g. "origin/main..HEAD").
            file: Filter by file.

        Returns:
            List of GitCommit objects.
        """
        args = ["log", f"--format={COMMIT_FORMAT}"]
        if limit is not None:
            args.append(f"-n{limit}")
        args.append(ref)
        if file:
            args.extend(["--", file])

        output = self._run(args)

        commits = []
        for line in output.split("\n"):
            if line:
                parsed = parse_commit_line(line)
                if parsed:
                    commits.append(GitCommit(**parsed))

        return commits

    def get_commit(self, ref: str = "HEAD") -> GitCommit:
        """Get details of a specific commit.

        Args:
            ref: Commit reference (hash, branch, tag, etc.).

        Returns:
            GitCommit object.
        """
        output = self._run(["show", "-s", f"--format={COMMIT_FORMAT}", ref])
        parsed = parse_commit_line(output)
        if not parsed:
            raise GitError(f"Could not parse commit: {ref}")
        return GitCommit(**parsed)

    def get_commit_parents(self, hashes: list[str]) -> list[tuple[str, list[str], str]]:
        """Describe commits without walking history.

        Returns:
            (hash, parent hashes, subject) for each commit.
        """
        if not hashes:
            return []
        output = self._run(
            ["log", "--no-walk=unsorted", f"--format=%H{FIELD_SEP}%P{FIELD_SEP}%s"] + hashes
        )
        described = []
        for line in output.split("\n"):
            parts = line.split(FIELD_SEP)
            if len(parts) >= 3 and parts[0]:
                described.append((parts[0], parts[1].split(), FIELD_SEP.join(parts[2:])))
        return described

    def get_branches(self) -> list[GitBranch]:
        """Get list of local branches."""
        fmt = FIELD_SEP.join(["%(refname:short)", "%(objectname)", "%(HEAD)", "%(upstream:short)"])
        output = self._run(["for-each-ref", f"--format={fmt}", "refs/heads"])

        branches = []
        for line in output.split("\n"):
            parts = line.split(FIELD_SEP)
            if len(parts) < 4 or not parts[0]:
                continue

            branches.append(GitBranch(
                name=parts[0],
                commit_hash=parts[1] or None,
                is_current=parts[2].strip() == "*",
                tracking=parts[3] or None,
            ))

        return branches

    def get_conflicted_files(self) -> list[str]:
        """Paths with unresolved merge conflicts."""
        output = self._run(["diff", "--name-only", "--diff-filter=U", "-z"])
        return [path for path in output.split("\0") if path]

    def get_remotes(self) -> dict[str, str]:
        """Get remote repositories.

        Returns:
            Dictionary of remote names to URLs.
        """
        output = self._run(["remote", "-v"])
        remotes = {}

        for line in output.split("\n"):
            if line and "(fetch)" in line:
                parts = line.split()
                if len(parts) >= 2:
                    remotes[parts[0]] = parts[1]

        return remotes

    def get_reflog(self, limit: int = 100) -> list[ReflogEntry]:
        """HEAD reflog entries, newest first. Empty when there is no reflog."""
        try:
            output = self._run(["reflog", "show", f"--format={REFLOG_FORMAT}", f"-n{limit}", "HEAD"])
        except GitError:
            return []

        entries = []
        for line in output.split("\n"):
            parsed = parse_reflog_line(line)
            if parsed:
                entries.append(ReflogEntry(**parsed))
        return entries

    def get_deleted_files(self, limit: int = 50) -> list[dict]:
        """(path, hash, message) for files deleted in the last `limit` commits."""
        output = self._run([
            "log",
            "--diff-filter=D",
            "--name-only",
            f"--format=%H{FIELD_SEP}%s",
            f"-n{limit}",
        ])
        return parse_name_only_log(output)

    def get_unreachable_commits(self) -> list[str]:
        """Hashes of commits not reachable from any ref or reflog."""
        result = run_git_command(
            ["fsck", "--unreachable", "--no-reflogs", "--no-progress"],
            cwd=self.path,
            check=False,
        )
        hashes = []
        for line in result.stdout.split("\n"):
            parts = line.split()
            if len(parts) == 3 and parts[1] == "commit":
                hashes.append(parts[2])
        return hashes

    def show_file(self, path: str, ref: str) -> str:
        """Contents of path as of ref."""
        return run_git_command(["show", f"{ref}:{path}"], cwd=self.path).stdout

    def clean_dry_run(self) -> list[str]:
        """Paths `git clean -fd` would remove."""
        return parse_clean_dry_run(self._run(["clean", "-nd"]))

    def stash_list(self) -> list[GitStash]:
        """List all stashes.

        Returns:
            List of GitStash objects.
        """
        try:
            output = self._run(["stash", "list", f"--format={STASH_FORMAT}"])
        except GitError:
            return []

        stashes = []
        for line in output.split("\n"):
            if not line:
                continue
            parsed = parse_stash_line(line)
            if parsed:
                stashes.append(GitStash(**parsed))

        return stashes

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def stage_files(self, files: list[str]) -> str:
        """Stage files for commit.

        Args:
            files: List of files to add (use ['.'] for all).

        Returns:
            Status message.
        """
        self._run(["add", "--"] + files)
        return f"Staged {len(files)} file(s)"

    def unstage_files(self, files: list[str]) -> str:
        """Remove files from the index, keeping working tree changes."""
        if self.get_head_hash() is None:
            self._run(["rm", "--cached", "-r", "-q", "--"] + files)
        else:
            self._run(["reset", "-q", "HEAD", "--"] + files)
        return f"Unstaged {len(files)} file(s)"

    def unstage_all(self) -> str:
        """Clear the index back to HEAD."""
        if self.get_head_hash() is None:
            self._run(["rm", "--cached", "-r", "-q", "."])
        else:
            self._run(["reset", "-q"])
        return "Unstaged all files"

    def commit(self, message: str, all: bool = False) -> GitCommit:
        """Create a commit.

        Args:
            message: Commit message.
            all: If True, auto-stage modified/deleted files.

        Returns:
            The created commit.
        """
        args = ["commit", "-m", message]
        if all:
            args.insert(1, "-a")

        self._run(args)

        # Return the created commit
        return self.get_commit("HEAD")

    def amend(self, message: Optional[str] = None) -> GitCommit:
        """Amend HEAD, keeping its message unless a new one is given."""
        args = ["commit", "--amend"]
        if message is None:
            args.append("--no-edit")
        else:
            args.extend(["-m", message])
        self._run(args)
        return self.get_commit("HEAD")

    def reset(self, mode: ResetMode, ref: str) -> str:
        """Move the current branch to ref using the given reset mode."""
        self._run(["reset", f"--{ResetMode(mode).value}", ref])
        return f"Reset ({ResetMode(mode).value}) to {ref}"

    def cherry_pick(self, commit: str) -> str:
        """Apply the change introduced by commit on top of HEAD."""
        output = self._run(["cherry-pick", commit])
        return output or f"Cherry-picked {commit[:7]}"

    def checkout(self, target: str, create: bool = False, start_point: Optional[str] = None) -> str:
        """Switch branches.

        Args:
            target: Branch name or commit.
            create: If True, create the branch first.
            start_point: Where a created branch starts (default: HEAD).

        Returns:
            Status message.
        """
        args = ["checkout"]
        if create:
            args.append("-b")
        args.append(target)
        if create and start_point:
            args.append(start_point)

        output = self._run(args)
        return output or f"Switched to {'new branch ' if create else ''}'{target}'"

    def checkout_branch(self, name: str) -> str:
        return self.checkout(name)

    def checkout_new_branch(self, name: str, start_point: Optional[str] = None) -> str:
        return self.checkout(name, create=True, start_point=start_point)

    def create_branch(self, name: str, start_point: Optional[str] = None) -> str:
        """Create a new branch without switching to it.

        Args:
            name: Branch name.
            start_point: Starting commit (default: HEAD).

        Returns:
            Status message.
        """
        args = ["branch", name]
        if start_point:
            args.append(start_point)

        self._run(args)
        return f"Created branch '{name}'"

    def fetch(self) -> str:
        """Fetch from the default remote(s)."""
        output = self._run(["fetch", "--all"])
        return output or "Fetched remote changes"

    def discard_file_changes(self, path: str) -> None:
        """Throw away unstaged changes to one file."""
        self._run(["checkout", "--", path])

    def discard_all(self) -> None:
        """Throw away all unstaged changes to tracked files."""
        self._run(["checkout", "--", "."])

    def clean(self, paths: Optional[list[str]] = None) -> None:
        """Delete untracked files and directories (all, or only paths)."""
        args = ["clean", "-fd"]
        if paths:
            args.extend(["--"] + paths)
        self._run(args)

    def restore_file(self, path: str, ref: str) -> None:
        """Overwrite path in index and working tree with its content at ref."""
        self._run(["checkout", ref, "--", path])

    def stash_push(self, message: Optional[str] = None, include_untracked: bool = False) -> str:
        """Stash current changes.

        Args:
            message: Optional stash message.
            include_untracked: Also stash untracked files.

        Returns:
            Status message.
        """
        args = ["stash", "push"]
        if include_untracked:
            args.append("--include-untracked")
        if message:
            args.extend(["-m", message])

        output = self._run(args)
        return output or "Stashed changes"

    def stash_apply(self, index: int = 0) -> str:
        """Apply a stash without removing it."""
        output = self._run(["stash", "apply", f"stash@{{{index}}}"])
        return output or f"Applied stash@{{{index}}}"

    def stash_pop(self, index: int = 0) -> str:
        """Pop a stash.

        Args:
            index: Stash index to pop.

        Returns:
            Status message.
        """
        args = ["stash", "pop", f"stash@{{{index}}}"]
        output = self._run(args)
        return output or f"Applied and dropped stash@{{{index}}}"

    def stash_drop(self, index: int = 0) -> str:
        """Drop a stash.

        Args:
            index: Stash index to drop.

        Returns:
            Status message.
        """
        args = ["stash", "drop", f"stash@{{{index}}}"]
        output = self._run(args)
        return output or f"Dropped stash@{{{index}}}"

    def stash_store(self, commit: str, message: str) -> str:
        """Put an existing stash commit back on the stash list."""
        self._run(["stash", "store", "-m", message, commit])
        return f"Stored {commit[:7]} as stash@{{0}}"

    def merge_abort(self) -> None:
        self._run(["merge", "--abort"])

    def merge_continue(self) -> None:
        self._run(["-c", "core.editor=true", "commit", "--no-edit"])

    def rebase_abort(self) -> None:
        self._run(["rebase", "--abort"])

    def rebase_continue(self) -> None:
        self._run(["-c", "core.editor=true", "rebase", "--continue"])

    def cherry_pick_abort(self) -> None:
        self._run(["cherry-pick", "--abort"])

    def cherry_pick_continue(self) -> None:
        self._run(["-c", "core.editor=true", "cherry-pick", "--continue"])

    def bisect_reset(self) -> None:
        self._run(["bisect", "reset"])
