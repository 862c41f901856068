"""Read-only repository queries."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from gitpanic.core.models import (
    DeletedBranch,
    DeletedFile,
    DivergedCommits,
    DroppedStash,
    OngoingOperation,
    RepositoryState,
)
from gitpanic.errors import GitError
from gitpanic.git.repository import GitCommit, GitRepository, GitStash, ReflogEntry
from gitpanic.git.utils import CHECKOUT_PATTERN, HASH_PATTERN, STASH_SUBJECT_PATTERN

logger = logging.getLogger(__name__)

# Checked in this order; the first marker found wins
OPERATION_MARKERS: list[tuple[OngoingOperation, tuple[str, ...]]] = [
    (OngoingOperation.REBASE, ("rebase-merge", "rebase-apply")),
    (OngoingOperation.MERGE, ("MERGE_HEAD",)),
    (OngoingOperation.CHERRY_PICK, ("CHERRY_PICK_HEAD",)),
    (OngoingOperation.BISECT, ("BISECT_LOG",)),
]


class RepositoryInspector:
    """Answers questions about a repository without changing it.

    Expected conditions (no commits, no remote, no tracking branch) come
    back as empty values rather than exceptions. Only a path that is not
    a repository at all raises, from ``open``.
    """

    def __init__(self, repo: GitRepository):
        self.repo = repo

    @classmethod
    def open(cls, path: Path | str) -> "RepositoryInspector":
        """Inspect the repository containing path.

        Raises:
            NotARepositoryError: If path is not inside a git repository.
        """
        return cls(GitRepository.open(path))

    # ------------------------------------------------------------------
    # HEAD and branches
    # ------------------------------------------------------------------

    def current_branch(self) -> Optional[str]:
        return self.repo.get_current_branch()

    def head_hash(self) -> Optional[str]:
        return self.repo.get_head_hash()

    def has_commits(self) -> bool:
        return self.head_hash() is not None

    def is_detached_head(self) -> bool:
        """True iff HEAD names a commit directly instead of a branch."""
        return self.repo.get_current_branch() is None

    def resolves(self, ref: str) -> bool:
        """Whether ref still names a commit in the object store."""
        return self.repo.rev_parse(ref) is not None

    def branches(self) -> list[str]:
        return [branch.name for branch in self.repo.get_branches()]

    def branch_exists(self, name: str) -> bool:
        return name in self.branches()

    def detached_head_info(self) -> Optional[GitCommit]:
        """The commit a detached HEAD points at, or None when attached."""
        if not self.is_detached_head() or not self.has_commits():
            return None
        return self.repo.get_commit("HEAD")

    # ------------------------------------------------------------------
    # Working tree
    # ------------------------------------------------------------------

    def ongoing_operation(self) -> OngoingOperation:
        """Detect a paused merge, rebase, cherry-pick or bisect.

        Looks at marker files in the git directory on every call. Stale
        leftovers can make several markers exist at once; the order of
        OPERATION_MARKERS breaks the tie.
        """
        git_dir = self.repo.git_dir
        for operation, markers in OPERATION_MARKERS:
            if any((git_dir / marker).exists() for marker in markers):
                return operation
        return OngoingOperation.NONE

    def conflicted_files(self) -> list[str]:
        try:
            return self.repo.get_conflicted_files()
        except GitError:
            return []

    def has_uncommitted_changes(self) -> bool:
        return not self.repo.get_status().is_clean

    def has_tracked_changes(self) -> bool:
        """Staged or unstaged edits to tracked files, which a hard reset discards.

        Untracked files survive a hard reset and are not counted.
        """
        status = self.repo.get_status()
        return bool(status.staged or status.modified or status.deleted or status.conflicted)

    def untracked_files(self) -> list[str]:
        return self.repo.get_status().untracked

    def clean_dry_run(self) -> list[str]:
        return self.repo.clean_dry_run()

    def state(self) -> RepositoryState:
        """Gather a full RepositoryState snapshot."""
        status = self.repo.get_status()
        head = self.head_hash()
        conflicted = self.conflicted_files() or status.conflicted

        return RepositoryState(
            branch=status.branch,
            head=head,
            ongoing_operation=self.ongoing_operation(),
            conflicted=conflicted,
            staged=status.staged_files,
            modified=status.modified + status.deleted,
            untracked=status.untracked,
            tracking=status.upstream,
            ahead=status.ahead,
            behind=status.behind,
            stash_count=len(self.repo.stash_list()),
            has_remote=self.has_remote(),
            last_commit=self.repo.get_commit("HEAD") if head else None,
        )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def recent_commits(self, count: int = 10) -> list[GitCommit]:
        """Up to count commits reachable from HEAD, newest first."""
        if count <= 0 or not self.has_commits():
            return []
        return self.repo.get_log(limit=count)

    def last_commit(self) -> Optional[GitCommit]:
        commits = self.recent_commits(1)
        return commits[0] if commits else None

    def file_history(self, path: str, count: int = 20) -> list[GitCommit]:
        if not self.has_commits():
            return []
        try:
            return self.repo.get_log(limit=count, file=path)
        except GitError:
            return []

    def file_at_commit(self, path: str, commit: str) -> str:
        return self.repo.show_file(path, commit)

    def deleted_files(self, count: int = 50) -> list[DeletedFile]:
        """Files deleted in recent commits, one entry per path (newest deletion)."""
        if not self.has_commits():
            return []
        seen: dict[str, DeletedFile] = {}
        for entry in self.repo.get_deleted_files(count):
            if entry["path"] not in seen:
                seen[entry["path"]] = DeletedFile(**entry)
        return list(seen.values())

    def reflog(self, count: int = 100) -> list[ReflogEntry]:
        return self.repo.get_reflog(count)

    def unique_reflog_commits(self, count: int = 50) -> list[ReflogEntry]:
        """Reflog entries with repeated hashes removed, newest first."""
        seen: set[str] = set()
        unique = []
        for entry in self.reflog(count):
            if entry.hash in seen:
                continue
            seen.add(entry.hash)
            unique.append(entry)
        return unique

    def reflog_deleted_branches(self, count: int = 100) -> list[DeletedBranch]:
        """Branches HEAD was checked out from that no longer exist.

        The reflog is scanned newest-first, so the first mention of a
        name wins. The recovered hash is where HEAD pointed just before
        leaving that branch, i.e. the next-older reflog entry.
        """
        entries = self.reflog(count)
        existing = set(self.branches())
        found: dict[str, DeletedBranch] = {}

        for position, entry in enumerate(entries):
            match = CHECKOUT_PATTERN.search(entry.message)
            if not match:
                continue

            name = match.group(1)
            if name in existing or name in found:
                continue
            if name == "HEAD" or HASH_PATTERN.match(name):
                continue

            if position + 1 < len(entries):
                tip = entries[position + 1].hash
            else:
                tip = entry.hash
            found[name] = DeletedBranch(name=name, hash=tip, message=entry.message)

        return list(found.values())

    # ------------------------------------------------------------------
    # Stashes
    # ------------------------------------------------------------------

    def stash_list(self) -> list[GitStash]:
        return self.repo.stash_list()

    def dropped_stashes(self) -> list[DroppedStash]:
        """Unreachable stash commits (merge commits with a stash subject)."""
        candidates = self.repo.get_unreachable_commits()
        if not candidates:
            return []

        dropped = []
        try:
            described = self.repo.get_commit_parents(candidates)
        except GitError as e:
            logger.warning(f"Could not describe unreachable commits: {e.message}")
            return []

        for commit_hash, parents, subject in described:
            if len(parents) >= 2 and STASH_SUBJECT_PATTERN.match(subject):
                dropped.append(DroppedStash(hash=commit_hash, message=subject))
        return dropped

    # ------------------------------------------------------------------
    # Remote
    # ------------------------------------------------------------------

    def has_remote(self) -> bool:
        try:
            return bool(self.repo.get_remotes())
        except GitError:
            return False

    def tracking_branch(self) -> Optional[str]:
        return self.repo.get_upstream()

    def is_pushed(self, commit: str) -> bool:
        """True iff commit is contained in the tracking branch's history."""
        tracking = self.tracking_branch()
        if not tracking:
            return False
        return self.repo.is_ancestor(commit, tracking)

    def diverged_commits(self) -> DivergedCommits:
        """Commits only on HEAD and only on the tracking branch, newest first."""
        tracking = self.tracking_branch()
        if not tracking or not self.has_commits():
            return DivergedCommits()

        return DivergedCommits(
            local=self.repo.get_log(limit=None, ref=f"{tracking}..HEAD"),
            remote=self.repo.get_log(limit=None, ref=f"HEAD..{tracking}"),
        )
