"""Safety checks run before any repository mutation.

A check never changes the repository and never prompts. It returns a
SafetyCheckResult: blockers mean the operation is impossible or would
corrupt state and must not run; warnings mean it is legal but the user
should confirm first. Deciding whether to ask is the caller's job.
"""

from __future__ import annotations

import re
from typing import Optional

from gitpanic.core.inspector import RepositoryInspector
from gitpanic.core.models import (
    OngoingOperation,
    RecoveryOperation,
    RepositoryState,
    ResetMode,
    SafetyCheckResult,
)

BRANCH_NAME_PATTERN = re.compile(r"^[A-Za-z0-9/_-]+$")


def validate_branch_name(name: str) -> Optional[str]:
    """Return an error message for an unusable branch name, else None."""
    if not name or not name.strip():
        return "Branch name cannot be empty"
    if not BRANCH_NAME_PATTERN.match(name):
        return "Branch name can only contain letters, numbers, /, _, and -"
    return None


def available_operations(
    state: RepositoryState,
    has_undoable_action: bool = False,
) -> dict[RecoveryOperation, bool]:
    """Which guided recoveries make sense for this repository state."""
    has_commits = state.has_commits
    has_changes = state.has_uncommitted_changes
    ongoing = state.ongoing_operation

    return {
        RecoveryOperation.UNDO_COMMIT: has_commits,
        RecoveryOperation.FIX_MESSAGE: has_commits,
        RecoveryOperation.AMEND: has_commits and has_changes,
        RecoveryOperation.SQUASH: has_commits,
        RecoveryOperation.MOVE_COMMITS: has_commits and not state.is_detached,
        RecoveryOperation.RECOVER_BRANCH: True,
        RecoveryOperation.FIX_DETACHED: state.is_detached and has_commits,
        RecoveryOperation.ABORT: ongoing != OngoingOperation.NONE,
        RecoveryOperation.CONTINUE: ongoing.can_continue and not state.has_conflicts,
        RecoveryOperation.STASH: True,
        RecoveryOperation.RECOVER_FILE: has_commits,
        RecoveryOperation.UNSTAGE: state.has_staged_changes,
        RecoveryOperation.DISCARD: bool(state.staged or state.modified),
        RecoveryOperation.CLEAN: bool(state.untracked),
        RecoveryOperation.FORCE_PUSH_RECOVERY: state.has_remote,
        RecoveryOperation.UNDO_ACTION: has_undoable_action,
    }


class SafetyEvaluator:
    """Classifies proposed operations using read-only repository queries."""

    def __init__(self, inspector: RepositoryInspector):
        self.inspector = inspector

    def check_before_reset(self, mode: ResetMode, commit_count: int = 1) -> SafetyCheckResult:
        """Check undoing the last commit_count commits with the given reset mode."""
        result = SafetyCheckResult()

        if commit_count < 1:
            result.blockers.append("Commit count must be at least 1")
            return result

        commits = self.inspector.recent_commits(commit_count)
        if len(commits) < commit_count:
            result.blockers.append(
                f"Only {len(commits)} commits available, cannot undo {commit_count}"
            )
        elif not self.inspector.resolves(f"HEAD~{commit_count}"):
            # Resetting needs a commit to land on; the root commit has no parent
            result.blockers.append(
                f"Cannot undo {commit_count} commit(s): that would remove the first commit"
            )

        if ResetMode(mode) == ResetMode.HARD and self.inspector.has_tracked_changes():
            result.warnings.append("Hard reset will discard all uncommitted changes")

        for commit in commits:
            if self.inspector.is_pushed(commit.hash):
                result.warnings.append(
                    f'Commit "{commit.message[:50]}" has been pushed. '
                    "Undoing will require force push."
                )

        return result

    def check_before_amend(self) -> SafetyCheckResult:
        """Check rewriting the last commit."""
        result = SafetyCheckResult()

        last_commit = self.inspector.last_commit()
        if last_commit is None:
            result.blockers.append("No commits to amend")
            return result

        if self.inspector.is_pushed(last_commit.hash):
            result.warnings.append(
                "This commit has been pushed. Amending will require a force push."
            )

        return result

    def check_before_branch_create(self, name: str) -> SafetyCheckResult:
        """Check creating a branch called name."""
        result = SafetyCheckResult()

        if name and self.inspector.branch_exists(name):
            result.blockers.append(f'Branch "{name}" already exists')

        error = validate_branch_name(name)
        if error:
            result.blockers.append(error)

        return result

    def check_before_squash(self, commit_count: int) -> SafetyCheckResult:
        """Check squashing the last commit_count commits into one."""
        if commit_count < 2:
            return SafetyCheckResult(blockers=["Select at least 2 commits to squash"])
        return self.check_before_reset(ResetMode.SOFT, commit_count)

    def check_before_move(self, commit_count: int, target: str, create: bool) -> SafetyCheckResult:
        """Check moving the last commit_count commits onto target."""
        result = SafetyCheckResult()
        current = self.inspector.current_branch()

        if current is None:
            result.blockers.append("Cannot move commits from a detached HEAD")
        elif target == current:
            result.blockers.append(f'Target branch "{target}" is the current branch')

        if create:
            result = result.merge(self.check_before_branch_create(target))
        elif not self.inspector.branch_exists(target):
            result.blockers.append(f'Branch "{target}" does not exist')

        return result.merge(self.check_before_reset(ResetMode.HARD, commit_count))

    def check_before_continue(self, operation: OngoingOperation) -> SafetyCheckResult:
        """Check continuing a paused merge, rebase or cherry-pick."""
        result = SafetyCheckResult()

        if operation == OngoingOperation.NONE:
            result.blockers.append("No ongoing Git operation to continue")
        elif not operation.can_continue:
            result.blockers.append(f"{operation.label} cannot be continued, only aborted")
        else:
            conflicted = self.inspector.conflicted_files()
            if conflicted:
                result.blockers.append(
                    f"There are still {len(conflicted)} unresolved conflict(s)"
                )

        return result

    def check_before_abort(self, operation: OngoingOperation) -> SafetyCheckResult:
        """Check aborting the paused operation."""
        result = SafetyCheckResult()
        if operation == OngoingOperation.NONE:
            result.blockers.append("No ongoing Git operation to abort")
        return result

    def check_before_reset_to(self, ref: str, mode: ResetMode = ResetMode.HARD) -> SafetyCheckResult:
        """Check pointing the current branch at an arbitrary ref."""
        result = SafetyCheckResult()

        if not self.inspector.resolves(ref):
            result.blockers.append(f"{ref} does not name an existing commit")
        if ResetMode(mode) == ResetMode.HARD and self.inspector.has_tracked_changes():
            result.warnings.append("Hard reset will discard all uncommitted changes")

        return result
