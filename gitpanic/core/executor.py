"""Repository mutations, one method per recovery scenario.

Single-primitive operations let GitError propagate unchanged. Compound
operations (move commits, squash) halt in place when a step fails and
raise StepFailedError describing the step; completed steps are never
rolled back, so whatever git left behind can be inspected or resolved.
"""

from __future__ import annotations

import logging
from typing import Optional

from gitpanic.core.inspector import RepositoryInspector
from gitpanic.core.models import MoveResult, OngoingOperation
from gitpanic.errors import GitError, RecoveryError, StepFailedError, UnresolvedConflictsError
from gitpanic.git.repository import GitCommit, GitRepository, ResetMode

logger = logging.getLogger(__name__)


class MutationExecutor:
    """Runs the git primitive sequences behind each recovery operation.

    The executor does not check safety or record history; the session
    does both around every call.
    """

    def __init__(self, repo: GitRepository, inspector: Optional[RepositoryInspector] = None):
        self.repo = repo
        self.inspector = inspector or RepositoryInspector(repo)

    # ------------------------------------------------------------------
    # Commits
    # ------------------------------------------------------------------

    def undo_commits(self, mode: ResetMode, count: int = 1) -> str:
        """Move the current branch back by count commits."""
        mode = ResetMode(mode)
        logger.info(f"Undoing {count} commit(s) with {mode.value} reset")
        return self.repo.reset(mode, f"HEAD~{count}")

    def reset_to(self, ref: str, mode: ResetMode = ResetMode.HARD) -> str:
        """Point the current branch at ref."""
        logger.info(f"Resetting ({ResetMode(mode).value}) to {ref}")
        return self.repo.reset(mode, ref)

    def amend_message(self, message: str) -> GitCommit:
        """Replace the last commit's message."""
        return self.repo.amend(message)

    def add_to_last_commit(self, paths: list[str], message: Optional[str] = None) -> GitCommit:
        """Stage paths and fold them into the last commit.

        Args:
            paths: Files to stage; an empty list amends with the index as is.
            message: New message, or None to keep the current one.
        """
        if paths:
            self.repo.stage_files(paths)
        return self.repo.amend(message)

    def squash(self, count: int, message: str) -> GitCommit:
        """Replace the last count commits with one commit.

        A soft reset to HEAD~count keeps the combined changes staged, then
        a single commit is made with message.

        Raises:
            StepFailedError: If either step fails. A failed commit leaves
                the changes staged on top of HEAD~count.
        """
        try:
            self.repo.reset(ResetMode.SOFT, f"HEAD~{count}")
        except GitError as e:
            raise StepFailedError(
                "squash", 1, "soft reset", e.message, original_error=e
            ) from e

        try:
            commit = self.repo.commit(message)
        except GitError as e:
            logger.error(f"Squash commit failed after reset: {e.message}")
            raise StepFailedError(
                "squash",
                2,
                "commit",
                f"{e.message}; the squashed changes are still staged",
                original_error=e,
            ) from e

        logger.info(f"Squashed {count} commits into {commit.short_hash}")
        return commit

    def move_commits(self, count: int, target: str, create: bool = True) -> MoveResult:
        """Move the last count commits of the current branch onto target.

        Steps:
            1. create target at source~count, or check out the existing target
            2. cherry-pick the commits onto it, oldest first
            3. check out the source branch again
            4. hard-reset the source branch back by count commits

        A failure stops the sequence where it happened. If a cherry-pick
        conflicts, the user is left on target with the cherry-pick paused
        and the source branch untouched.

        Raises:
            StepFailedError: Naming the failed step, the commit being
                applied and the commits already applied.
        """
        operation = "move commits"
        source = self.repo.get_current_branch()
        if source is None:
            raise RecoveryError("Cannot move commits from a detached HEAD", code="DETACHED_HEAD")

        commits = list(reversed(self.repo.get_log(limit=count)))
        base = self.repo.rev_parse(f"{source}~{count}")
        if len(commits) < count or base is None:
            raise RecoveryError(f"Branch '{source}' does not have {count} commits to move")

        try:
            if create:
                self.repo.checkout_new_branch(target, base)
            else:
                self.repo.checkout_branch(target)
        except GitError as e:
            raise StepFailedError(
                operation, 1, "checkout target", e.message, branch=source, original_error=e
            ) from e

        applied: list[str] = []
        for commit in commits:
            try:
                self.repo.cherry_pick(commit.hash)
            except GitError as e:
                paused = e.is_conflict
                logger.warning(
                    f"Cherry-pick of {commit.short_hash} onto {target} failed "
                    f"({'conflict' if paused else 'error'}); stopping"
                )
                reason = "conflict, resolve it or abort the cherry-pick" if paused else e.message
                raise StepFailedError(
                    operation,
                    2,
                    "cherry-pick",
                    reason,
                    commit=commit.hash,
                    branch=target,
                    applied=applied,
                    paused=paused,
                    original_error=e,
                ) from e
            applied.append(commit.hash)

        try:
            self.repo.checkout_branch(source)
        except GitError as e:
            raise StepFailedError(
                operation,
                3,
                "checkout source",
                e.message,
                branch=target,
                applied=applied,
                original_error=e,
            ) from e

        try:
            self.repo.reset(ResetMode.HARD, base)
        except GitError as e:
            raise StepFailedError(
                operation,
                4,
                "reset source",
                e.message,
                branch=source,
                applied=applied,
                original_error=e,
            ) from e

        logger.info(f"Moved {len(applied)} commit(s) from {source} to {target}")
        return MoveResult(source=source, target=target, moved=applied, created=create)

    def cherry_pick(self, commit: str) -> bool:
        """Apply one commit on top of HEAD.

        Returns:
            True if it applied cleanly, False if it paused on a conflict.

        Raises:
            GitError: For any failure other than a conflict.
        """
        try:
            self.repo.cherry_pick(commit)
        except GitError as e:
            if e.is_conflict:
                logger.warning(f"Cherry-pick of {commit[:7]} paused on a conflict")
                return False
            raise
        return True

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    def create_branch_here(self, name: str) -> str:
        """Create a branch at HEAD and switch to it (fixes a detached HEAD)."""
        return self.repo.checkout_new_branch(name)

    def create_branch_at(self, name: str, ref: str, checkout: bool = True) -> str:
        """Create a branch at ref, optionally switching to it."""
        if checkout:
            return self.repo.checkout_new_branch(name, ref)
        return self.repo.create_branch(name, ref)

    def checkout_branch(self, name: str) -> str:
        return self.repo.checkout_branch(name)

    def recover_branch(self, name: str, commit: str, checkout: bool = False) -> str:
        """Re-create a deleted branch at a commit found in the reflog."""
        message = self.create_branch_at(name, commit, checkout=checkout)
        logger.info(f"Recovered branch {name} at {commit[:7]}")
        return message

    # ------------------------------------------------------------------
    # Stashes
    # ------------------------------------------------------------------

    def create_stash(self, message: Optional[str] = None, include_untracked: bool = False) -> str:
        return self.repo.stash_push(message, include_untracked)

    def apply_stash(self, index: int = 0) -> str:
        return self.repo.stash_apply(index)

    def pop_stash(self, index: int = 0) -> str:
        return self.repo.stash_pop(index)

    def drop_stash(self, index: int = 0) -> str:
        return self.repo.stash_drop(index)

    def recover_stash(self, commit: str, message: str) -> str:
        """Put a dropped stash commit back on the stash list."""
        return self.repo.stash_store(commit, message)

    # ------------------------------------------------------------------
    # Working tree
    # ------------------------------------------------------------------

    def unstage(self, paths: Optional[list[str]] = None) -> str:
        if paths:
            return self.repo.unstage_files(paths)
        return self.repo.unstage_all()

    def discard(self, paths: Optional[list[str]] = None) -> None:
        """Throw away unstaged changes to paths, or to every tracked file."""
        if paths:
            for path in paths:
                self.repo.discard_file_changes(path)
        else:
            self.repo.discard_all()

    def clean(self, paths: Optional[list[str]] = None) -> list[str]:
        """Delete untracked files and return what was removed."""
        candidates = self.repo.clean_dry_run()
        if paths:
            removed = [p for p in candidates if p in paths or p.rstrip("/") in paths]
        else:
            removed = candidates
        if not removed:
            return []
        self.repo.clean(paths)
        logger.info(f"Removed {len(removed)} untracked item(s)")
        return removed

    def restore_file(self, path: str, commit: str) -> None:
        """Replace path with its content at commit."""
        self.repo.restore_file(path, commit)

    def recover_deleted_file(self, path: str, deleting_commit: str) -> None:
        """Bring back a file from the parent of the commit that deleted it."""
        self.repo.restore_file(path, f"{deleting_commit}~1")

    # ------------------------------------------------------------------
    # Ongoing operations
    # ------------------------------------------------------------------

    def abort(self, operation: OngoingOperation) -> None:
        """Abort a paused merge, rebase, cherry-pick or bisect."""
        operation = OngoingOperation(operation)
        if operation == OngoingOperation.MERGE:
            self.repo.merge_abort()
        elif operation == OngoingOperation.REBASE:
            self.repo.rebase_abort()
        elif operation == OngoingOperation.CHERRY_PICK:
            self.repo.cherry_pick_abort()
        elif operation == OngoingOperation.BISECT:
            self.repo.bisect_reset()
        elif operation == OngoingOperation.NONE:
            raise RecoveryError("No ongoing Git operation to abort", code="NO_OPERATION")
        else:
            raise ValueError(f"Unhandled operation: {operation}")
        logger.info(f"Aborted {operation.value}")

    def continue_(self, operation: OngoingOperation) -> None:
        """Continue a paused merge, rebase or cherry-pick.

        Raises:
            UnresolvedConflictsError: If conflicts remain; the operation
                stays paused.
        """
        operation = OngoingOperation(operation)
        if not operation.can_continue:
            raise RecoveryError(
                f"{operation.label} cannot be continued", code="NO_OPERATION"
            )

        conflicted = self.inspector.conflicted_files()
        if conflicted:
            raise UnresolvedConflictsError(operation.value, conflicted)

        try:
            if operation == OngoingOperation.MERGE:
                self.repo.merge_continue()
            elif operation == OngoingOperation.REBASE:
                self.repo.rebase_continue()
            elif operation == OngoingOperation.CHERRY_PICK:
                self.repo.cherry_pick_continue()
            else:
                raise ValueError(f"Unhandled operation: {operation}")
        except GitError as e:
            if e.is_conflict:
                raise UnresolvedConflictsError(
                    operation.value, self.inspector.conflicted_files()
                ) from e
            raise
        logger.info(f"Continued {operation.value}")

    # ------------------------------------------------------------------
    # Remote
    # ------------------------------------------------------------------

    def fetch(self) -> str:
        return self.repo.fetch()
