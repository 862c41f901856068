"""Data models for the recovery core."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from gitpanic.git.repository import GitCommit, ResetMode

__all__ = [
    "ActionType",
    "DeletedBranch",
    "DeletedFile",
    "DivergedCommits",
    "DroppedStash",
    "GitCommit",
    "MoveResult",
    "OngoingOperation",
    "PositionSnapshot",
    "RecordedAction",
    "RecoveryOperation",
    "RepositoryState",
    "ResetMode",
    "SafetyCheckResult",
    "UndoResult",
]


class OngoingOperation(str, Enum):
    """Multi-step git operation currently paused in the working tree."""

    NONE = "none"
    MERGE = "merge"
    REBASE = "rebase"
    CHERRY_PICK = "cherry-pick"
    BISECT = "bisect"

    @property
    def can_continue(self) -> bool:
        """Bisect can only be aborted; the others can also be continued."""
        return self in (
            OngoingOperation.MERGE,
            OngoingOperation.REBASE,
            OngoingOperation.CHERRY_PICK,
        )

    @property
    def label(self) -> str:
        return {
            OngoingOperation.NONE: "None",
            OngoingOperation.MERGE: "Merge",
            OngoingOperation.REBASE: "Rebase",
            OngoingOperation.CHERRY_PICK: "Cherry-pick",
            OngoingOperation.BISECT: "Bisect",
        }[self]


class ActionType(str, Enum):
    """Kind of a recorded recovery action."""

    UNDO_COMMIT = "undo_commit"
    AMEND_MESSAGE = "amend_message"
    AMEND_COMMIT = "amend_commit"
    MOVE_COMMITS = "move_commits"
    SQUASH_COMMITS = "squash_commits"
    RECOVER_BRANCH = "recover_branch"
    CREATE_BRANCH = "create_branch"
    CHECKOUT_BRANCH = "checkout_branch"
    ABORT_OPERATION = "abort_operation"
    RESET_TO_REMOTE = "reset_to_remote"
    RESET_TO_COMMIT = "reset_to_commit"
    CHERRY_PICK = "cherry_pick"
    CREATE_STASH = "create_stash"
    POP_STASH = "pop_stash"
    RECOVER_STASH = "recover_stash"
    RESTORE_FILE = "restore_file"


class RecoveryOperation(str, Enum):
    """Guided recoveries offered to the user."""

    UNDO_COMMIT = "undo-commit"
    FIX_MESSAGE = "fix-message"
    AMEND = "amend"
    SQUASH = "squash"
    MOVE_COMMITS = "move-commits"
    RECOVER_BRANCH = "recover-branch"
    FIX_DETACHED = "fix-detached"
    ABORT = "abort"
    CONTINUE = "continue"
    STASH = "stash"
    RECOVER_FILE = "recover-file"
    UNSTAGE = "unstage"
    DISCARD = "discard"
    CLEAN = "clean"
    FORCE_PUSH_RECOVERY = "force-push-recovery"
    UNDO_ACTION = "undo"


@dataclass
class RepositoryState:
    """Snapshot of repository state, derived fresh on every query."""

    branch: Optional[str]
    head: Optional[str]
    ongoing_operation: OngoingOperation = OngoingOperation.NONE
    conflicted: list[str] = field(default_factory=list)
    staged: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)
    tracking: Optional[str] = None
    ahead: int = 0
    behind: int = 0
    stash_count: int = 0
    has_remote: bool = False
    last_commit: Optional[GitCommit] = None

    @property
    def is_detached(self) -> bool:
        return self.branch is None

    @property
    def has_commits(self) -> bool:
        return self.head is not None

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicted)

    @property
    def has_staged_changes(self) -> bool:
        return bool(self.staged)

    @property
    def has_uncommitted_changes(self) -> bool:
        return bool(self.staged or self.modified or self.untracked or self.conflicted)


@dataclass
class SafetyCheckResult:
    """Outcome of checking a proposed operation.

    Blockers always stop the operation; warnings only ask for confirmation.
    """

    warnings: list[str] = field(default_factory=list)
    blockers: list[str] = field(default_factory=list)

    @property
    def safe(self) -> bool:
        return not self.blockers

    def merge(self, other: "SafetyCheckResult") -> "SafetyCheckResult":
        """Combine two results, keeping every warning and blocker."""
        return SafetyCheckResult(
            warnings=self.warnings + other.warnings,
            blockers=self.blockers + other.blockers,
        )


@dataclass(frozen=True)
class DivergedCommits:
    """Commits only on the local branch and only on its tracking branch."""

    local: list[GitCommit] = field(default_factory=list)
    remote: list[GitCommit] = field(default_factory=list)

    @property
    def in_sync(self) -> bool:
        return not self.local and not self.remote


@dataclass(frozen=True)
class DeletedBranch:
    """A branch name seen in the reflog that no longer exists."""

    name: str
    hash: str
    message: str


@dataclass(frozen=True)
class DroppedStash:
    """An unreachable stash commit that can be stored again."""

    hash: str
    message: str


@dataclass(frozen=True)
class DeletedFile:
    """A path removed by a commit, recoverable from that commit's parent."""

    path: str
    hash: str
    message: str


@dataclass(frozen=True)
class MoveResult:
    """Result of moving commits from one branch to another."""

    source: str
    target: str
    moved: list[str]
    created: bool


class PositionSnapshot(BaseModel):
    """Where HEAD pointed at one instant."""

    head_hash: Optional[str] = None
    branch: Optional[str] = None


class RecordedAction(BaseModel):
    """A recovery action in the history ledger."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    type: ActionType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    description: str
    before_state: PositionSnapshot
    after_state: Optional[PositionSnapshot] = None
    undo_command: Optional[str] = None
    can_undo: bool = True
    error: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.after_state is not None

    @property
    def is_undoable(self) -> bool:
        return self.can_undo and self.undo_command is not None


@dataclass(frozen=True)
class UndoResult:
    """What undo_last_action reverted."""

    action: RecordedAction
    reset_to: str

    @property
    def message(self) -> str:
        return f'Undid "{self.action.description}"'
