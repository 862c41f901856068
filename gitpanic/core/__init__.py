"""Recovery core for GitPanic.

Layers, leaves first:
- RepositoryInspector: read-only state queries
- SafetyEvaluator: blockers and warnings for a proposed operation
- MutationExecutor: git primitive sequences, halting in place on failure
- ActionLedger: before/after snapshots and single-step undo
- RecoverySession: wires the four together for one repository
"""

from gitpanic.core.executor import MutationExecutor
from gitpanic.core.history import ActionLedger
from gitpanic.core.inspector import RepositoryInspector
from gitpanic.core.models import (
    ActionType,
    DeletedBranch,
    DeletedFile,
    DivergedCommits,
    DroppedStash,
    MoveResult,
    OngoingOperation,
    PositionSnapshot,
    RecordedAction,
    RecoveryOperation,
    RepositoryState,
    ResetMode,
    SafetyCheckResult,
    UndoResult,
)
from gitpanic.core.safety import SafetyEvaluator, available_operations, validate_branch_name
from gitpanic.core.session import RecoverySession
from gitpanic.core.store import HistoryStore, JsonHistoryStore, MemoryHistoryStore

__all__ = [
    # Components
    "ActionLedger",
    "MutationExecutor",
    "RecoverySession",
    "RepositoryInspector",
    "SafetyEvaluator",
    # Stores
    "HistoryStore",
    "JsonHistoryStore",
    "MemoryHistoryStore",
    # Models
    "ActionType",
    "DeletedBranch",
    "DeletedFile",
    "DivergedCommits",
    "DroppedStash",
    "MoveResult",
    "OngoingOperation",
    "PositionSnapshot",
    "RecordedAction",
    "RecoveryOperation",
    "RepositoryState",
    "ResetMode",
    "SafetyCheckResult",
    "UndoResult",
    # Functions
    "available_operations",
    "validate_branch_name",
]
