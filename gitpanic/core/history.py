"""Action history ledger.

Every recovery operation is bracketed by a RecordedAction holding where
HEAD was before and after it ran. The most recent undoable action can be
reverted with a hard reset to its recorded "before" position; each
record can only be undone once.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from gitpanic.core.inspector import RepositoryInspector
from gitpanic.core.models import ActionType, PositionSnapshot, RecordedAction, UndoResult
from gitpanic.core.store import HistoryStore
from gitpanic.errors import NoUndoableActionError, StaleReferenceError, WrongBranchError
from gitpanic.git.repository import ResetMode

logger = logging.getLogger(__name__)

DEFAULT_MAX_ACTIONS = 50


class ActionLedger:
    """Owns the persisted, capped log of recovery actions for one repository.

    Constructed once per session and injected where needed; ``close``
    flushes the log a final time.
    """

    def __init__(
        self,
        inspector: RepositoryInspector,
        store: HistoryStore,
        max_actions: int = DEFAULT_MAX_ACTIONS,
    ):
        """Initialize the ledger.

        Args:
            inspector: Used to snapshot HEAD and check recorded hashes.
            store: Where the log is loaded from and saved to.
            max_actions: Maximum number of records kept; oldest are evicted first.
        """
        if max_actions < 1:
            raise ValueError("max_actions must be at least 1")
        self.inspector = inspector
        self.store = store
        self.max_actions = max_actions
        self._actions: list[RecordedAction] = store.load()[-max_actions:]
        self._closed = False

    @property
    def actions(self) -> list[RecordedAction]:
        """All retained records, oldest first."""
        return list(self._actions)

    def _snapshot(self) -> PositionSnapshot:
        return PositionSnapshot(
            head_hash=self.inspector.head_hash(),
            branch=self.inspector.current_branch(),
        )

    def _persist(self) -> None:
        if len(self._actions) > self.max_actions:
            evicted = len(self._actions) - self.max_actions
            self._actions = self._actions[-self.max_actions:]
            logger.debug(f"Evicted {evicted} oldest action(s) from history")
        self.store.save(self._actions)

    # ========== Recording ==========

    def record_action(
        self,
        action_type: ActionType,
        description: str,
        can_undo: bool = True,
    ) -> RecordedAction:
        """Open a record, capturing the current position as its before state.

        Returns:
            The open record; pass it to complete_action when the operation ends.
        """
        action = RecordedAction(
            type=ActionType(action_type),
            description=description,
            before_state=self._snapshot(),
            can_undo=can_undo,
        )
        self._actions.append(action)
        logger.info(f"Recording action {action.id}: {description}")
        return action

    def complete_action(self, action: RecordedAction, error: Optional[str] = None) -> RecordedAction:
        """Close a record with the current position and persist the log.

        An undo command is derived only when the action is undoable and
        HEAD actually moved; a no-op has nothing to reverse.
        """
        action.after_state = self._snapshot()
        action.error = error

        before_hash = action.before_state.head_hash
        moved = before_hash is not None and before_hash != action.after_state.head_hash
        if action.can_undo and moved:
            action.undo_command = f"git reset --hard {before_hash}"
        else:
            action.undo_command = None

        self._persist()

        if error:
            logger.warning(f"Action {action.id} failed: {error}")
        else:
            logger.info(f"Completed action {action.id}: {action.description}")
        return action

    @contextmanager
    def track(
        self,
        action_type: ActionType,
        description: str,
        can_undo: bool = True,
    ) -> Iterator[RecordedAction]:
        """Bracket an operation so its record is completed on every exit path.

        If the body raises, the record is completed with the error text
        and the exception propagates. A failure that left HEAD on another
        branch is not undoable, since a hard reset would hit the wrong one.

        Example:
            with ledger.track(ActionType.UNDO_COMMIT, "Undo last commit"):
                executor.undo_commits(ResetMode.SOFT, 1)
        """
        action = self.record_action(action_type, description, can_undo)
        try:
            yield action
        except BaseException as e:
            if self.inspector.current_branch() != action.before_state.branch:
                action.can_undo = False
            self.complete_action(action, error=str(e) or type(e).__name__)
            raise
        else:
            self.complete_action(action)

    # ========== Undo ==========

    def last_undoable_action(self) -> Optional[RecordedAction]:
        """The newest record that can still be undone."""
        for action in reversed(self._actions):
            if action.is_undoable:
                return action
        return None

    def undo_last_action(self) -> UndoResult:
        """Revert the newest undoable action with a hard reset.

        Raises:
            NoUndoableActionError: If no record can be undone.
            StaleReferenceError: If the recorded commit no longer exists;
                the repository is left untouched.
            WrongBranchError: If HEAD is no longer on the branch the action
                was recorded on; the repository is left untouched.
        """
        action = self.last_undoable_action()
        if action is None:
            raise NoUndoableActionError()

        target = action.before_state.head_hash
        if target is None or not self.inspector.resolves(target):
            raise StaleReferenceError(target or "HEAD", action.id)

        current = self.inspector.current_branch()
        if current != action.before_state.branch:
            raise WrongBranchError(action.before_state.branch, current, action.id)

        self.inspector.repo.reset(ResetMode.HARD, target)
        action.can_undo = False
        self._persist()

        logger.info(f"Undid action {action.id}, HEAD reset to {target[:7]}")
        return UndoResult(action=action, reset_to=target)

    # ========== Queries ==========

    def last_action(self) -> Optional[RecordedAction]:
        return self._actions[-1] if self._actions else None

    def recent_actions(self, count: int = 10) -> list[RecordedAction]:
        """Up to count records, newest first."""
        if count <= 0:
            return []
        return list(reversed(self._actions[-count:]))

    def clear(self) -> None:
        """Forget every record."""
        self._actions = []
        self.store.save(self._actions)
        logger.info("Cleared action history")

    # ========== Lifecycle ==========

    def close(self) -> None:
        """Flush the log a final time. Safe to call more than once."""
        if self._closed:
            return
        self._persist()
        self._closed = True

    def __enter__(self) -> "ActionLedger":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
