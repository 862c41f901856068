"""Recovery session: the composition root of the recovery core.

A session owns one repository's inspector, safety evaluator, executor and
action ledger. Every mutating operation follows the same order: run the
safety check and refuse on blockers, open a history record, run the
executor, close the record. Warnings are not confirmed here; callers
fetch them with the ``check_*`` methods of ``session.safety`` first.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from gitpanic.config import Settings
from gitpanic.core.executor import MutationExecutor
from gitpanic.core.history import ActionLedger
from gitpanic.core.inspector import RepositoryInspector
from gitpanic.core.models import (
    ActionType,
    MoveResult,
    OngoingOperation,
    RecordedAction,
    RecoveryOperation,
    RepositoryState,
    SafetyCheckResult,
    UndoResult,
)
from gitpanic.core.safety import SafetyEvaluator, available_operations
from gitpanic.core.store import HistoryStore, JsonHistoryStore
from gitpanic.errors import OperationBlockedError, RecoveryError
from gitpanic.git.repository import GitCommit, GitRepository, ResetMode

logger = logging.getLogger(__name__)


class RecoverySession:
    """Safety-checked, history-recorded recovery operations on one repository."""

    def __init__(
        self,
        repo: GitRepository,
        ledger: ActionLedger,
        inspector: Optional[RepositoryInspector] = None,
    ):
        self.repo = repo
        self.inspector = inspector or ledger.inspector
        self.safety = SafetyEvaluator(self.inspector)
        self.executor = MutationExecutor(repo, self.inspector)
        self.ledger = ledger

    @classmethod
    def open(
        cls,
        path: Path | str,
        settings: Optional[Settings] = None,
        store: Optional[HistoryStore] = None,
    ) -> "RecoverySession":
        """Open a session on the repository containing path.

        Args:
            path: Any path inside the repository.
            settings: Loaded settings (default: built-in defaults).
            store: History store (default: JSON file from settings).

        Raises:
            NotARepositoryError: If path is not inside a git repository.
        """
        settings = settings or Settings()
        repo = GitRepository.open(path)
        inspector = RepositoryInspector(repo)
        if store is None:
            store = JsonHistoryStore(settings.history.resolved_path(repo.git_dir))
        ledger = ActionLedger(inspector, store, settings.history.max_actions)
        return cls(repo, ledger, inspector)

    def close(self) -> None:
        self.ledger.close()

    def __enter__(self) -> "RecoverySession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @staticmethod
    def _guard(operation: str, result: SafetyCheckResult) -> None:
        if not result.safe:
            logger.info(f"Refusing to {operation}: {'; '.join(result.blockers)}")
            raise OperationBlockedError(operation, result)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def state(self) -> RepositoryState:
        return self.inspector.state()

    def available_operations(self) -> dict[RecoveryOperation, bool]:
        return available_operations(
            self.state(),
            has_undoable_action=self.ledger.last_undoable_action() is not None,
        )

    # ------------------------------------------------------------------
    # Commits
    # ------------------------------------------------------------------

    def undo_commits(self, mode: ResetMode, count: int = 1) -> str:
        """Undo the last count commits with a soft, mixed or hard reset."""
        mode = ResetMode(mode)
        self._guard("undo commits", self.safety.check_before_reset(mode, count))
        with self.ledger.track(
            ActionType.UNDO_COMMIT, f"Undo {count} commit(s) ({mode.value} reset)"
        ):
            return self.executor.undo_commits(mode, count)

    def fix_message(self, message: str) -> GitCommit:
        """Reword the last commit."""
        self._guard("amend the last commit", self.safety.check_before_amend())
        with self.ledger.track(ActionType.AMEND_MESSAGE, f'Change commit message to "{message[:50]}"'):
            return self.executor.amend_message(message)

    def amend(self, paths: list[str], message: Optional[str] = None) -> GitCommit:
        """Add paths (or the current index) to the last commit."""
        self._guard("amend the last commit", self.safety.check_before_amend())
        description = f"Add {len(paths)} file(s) to last commit" if paths else "Amend last commit"
        with self.ledger.track(ActionType.AMEND_COMMIT, description):
            return self.executor.add_to_last_commit(paths, message)

    def squash(self, count: int, message: str) -> GitCommit:
        self._guard("squash commits", self.safety.check_before_squash(count))
        with self.ledger.track(ActionType.SQUASH_COMMITS, f"Squash {count} commits"):
            return self.executor.squash(count, message)

    def move_commits(self, count: int, target: str, create: bool = True) -> MoveResult:
        self._guard("move commits", self.safety.check_before_move(count, target, create))
        with self.ledger.track(ActionType.MOVE_COMMITS, f"Move {count} commit(s) to {target}"):
            return self.executor.move_commits(count, target, create)

    def reset_to_commit(self, ref: str, mode: ResetMode = ResetMode.HARD) -> str:
        self._guard("reset", self.safety.check_before_reset_to(ref, mode))
        with self.ledger.track(ActionType.RESET_TO_COMMIT, f"Reset to {ref[:12]}"):
            return self.executor.reset_to(ref, mode)

    def reset_to_remote(self) -> str:
        """Make the current branch match its tracking branch exactly."""
        tracking = self.inspector.tracking_branch()
        if tracking is None:
            raise OperationBlockedError(
                "reset to remote",
                SafetyCheckResult(blockers=["The current branch has no tracking branch"]),
            )
        self._guard("reset to remote", self.safety.check_before_reset_to(tracking))
        with self.ledger.track(ActionType.RESET_TO_REMOTE, f"Reset to {tracking}"):
            return self.executor.reset_to(tracking)

    def cherry_pick(self, commit: str) -> bool:
        """Apply a lost commit onto HEAD; False if it paused on a conflict."""
        with self.ledger.track(ActionType.CHERRY_PICK, f"Cherry-pick {commit[:7]}"):
            return self.executor.cherry_pick(commit)

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    def create_branch_here(self, name: str) -> str:
        """Create a branch at HEAD and switch to it."""
        self._guard("create branch", self.safety.check_before_branch_create(name))
        with self.ledger.track(ActionType.CREATE_BRANCH, f"Create branch {name}"):
            return self.executor.create_branch_here(name)

    def create_branch_at(self, name: str, ref: str, checkout: bool = True) -> str:
        result = self.safety.check_before_branch_create(name)
        if not self.inspector.resolves(ref):
            result.blockers.append(f"{ref} does not name an existing commit")
        self._guard("create branch", result)
        # Switching branches cannot be reverted by a reset of the new branch
        with self.ledger.track(
            ActionType.CREATE_BRANCH, f"Create branch {name} at {ref[:12]}", can_undo=not checkout
        ):
            return self.executor.create_branch_at(name, ref, checkout)

    def checkout_branch(self, name: str) -> str:
        if not self.inspector.branch_exists(name):
            raise OperationBlockedError(
                "checkout", SafetyCheckResult(blockers=[f'Branch "{name}" does not exist'])
            )
        with self.ledger.track(ActionType.CHECKOUT_BRANCH, f"Checkout {name}", can_undo=False):
            return self.executor.checkout_branch(name)

    def recover_branch(self, name: str, commit: str, checkout: bool = False) -> str:
        self._guard("recover branch", self.safety.check_before_branch_create(name))
        with self.ledger.track(
            ActionType.RECOVER_BRANCH, f"Recover branch {name}", can_undo=not checkout
        ):
            return self.executor.recover_branch(name, commit, checkout)

    # ------------------------------------------------------------------
    # Ongoing operations
    # ------------------------------------------------------------------

    def abort(self) -> OngoingOperation:
        """Abort whatever merge, rebase, cherry-pick or bisect is paused."""
        operation = self.inspector.ongoing_operation()
        self._guard("abort", self.safety.check_before_abort(operation))
        with self.ledger.track(
            ActionType.ABORT_OPERATION, f"Abort {operation.value}", can_undo=False
        ):
            self.executor.abort(operation)
        return operation

    def continue_(self) -> OngoingOperation:
        operation = self.inspector.ongoing_operation()
        self._guard("continue", self.safety.check_before_continue(operation))
        self.executor.continue_(operation)
        return operation

    # ------------------------------------------------------------------
    # Stashes
    # ------------------------------------------------------------------

    def create_stash(self, message: Optional[str] = None, include_untracked: bool = False) -> str:
        if not self.inspector.has_uncommitted_changes():
            raise RecoveryError("No local changes to stash", code="NOTHING_TO_STASH")
        with self.ledger.track(ActionType.CREATE_STASH, f"Stash {message or 'changes'}"):
            return self.executor.create_stash(message, include_untracked)

    def apply_stash(self, index: int = 0) -> str:
        return self.executor.apply_stash(index)

    def pop_stash(self, index: int = 0) -> str:
        with self.ledger.track(ActionType.POP_STASH, f"Pop stash@{{{index}}}"):
            return self.executor.pop_stash(index)

    def drop_stash(self, index: int = 0) -> str:
        return self.executor.drop_stash(index)

    def recover_stash(self, commit: str, message: str) -> str:
        with self.ledger.track(ActionType.RECOVER_STASH, f"Recover stash {commit[:7]}"):
            return self.executor.recover_stash(commit, message)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def restore_file(self, path: str, commit: str) -> None:
        with self.ledger.track(ActionType.RESTORE_FILE, f"Restore {path} from {commit[:7]}"):
            self.executor.restore_file(path, commit)

    def recover_deleted_file(self, path: str, deleting_commit: str) -> None:
        with self.ledger.track(ActionType.RESTORE_FILE, f"Recover deleted {path}"):
            self.executor.recover_deleted_file(path, deleting_commit)

    def unstage(self, paths: Optional[list[str]] = None) -> str:
        return self.executor.unstage(paths)

    def discard(self, paths: Optional[list[str]] = None) -> None:
        self.executor.discard(paths)

    def clean(self, paths: Optional[list[str]] = None) -> list[str]:
        return self.executor.clean(paths)

    # ------------------------------------------------------------------
    # Remote and history
    # ------------------------------------------------------------------

    def fetch(self) -> str:
        return self.executor.fetch()

    def undo_last_action(self) -> UndoResult:
        return self.ledger.undo_last_action()

    def history(self, count: int = 10) -> list[RecordedAction]:
        return self.ledger.recent_actions(count)
