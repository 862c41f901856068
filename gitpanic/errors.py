"""Centralized exception hierarchy for GitPanic.

Every failure the recovery core can report derives from GitPanicError so
callers can catch one type, print a message and still inspect the
structured ``details`` for the specific condition.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from gitpanic.core.models import SafetyCheckResult


class GitPanicError(Exception):
    """Base exception for all GitPanic errors.

    Attributes:
        message: Human-readable error message.
        code: Optional error code for programmatic handling.
        details: Optional dictionary with additional error context.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(GitPanicError):
    """Raised when there's a configuration problem."""
    pass


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            message=f"Invalid configuration for '{field}': {reason}",
            code="INVALID_CONFIG",
            details={"field": field, "value": str(value)[:100], "reason": reason},
        )


# =============================================================================
# Git Errors
# =============================================================================

class GitError(GitPanicError):
    """Raised when a git primitive fails (non-zero exit)."""

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
        stdout: Optional[str] = None,
        args: Optional[list[str]] = None,
    ):
        details: dict[str, Any] = {}
        if returncode is not None:
            details["returncode"] = returncode
        if stderr:
            details["stderr"] = stderr[:500]  # Truncate for safety
        if args:
            details["command"] = " ".join(["git"] + args)
        super().__init__(message, "GIT_ERROR", details)
        self.returncode = returncode
        self.stderr = stderr or ""
        self.stdout = stdout or ""
        self.git_args = args or []

    @property
    def is_conflict(self) -> bool:
        """Whether the failure is a content conflict that paused the command.

        Conflicts leave state behind for manual resolution, so callers
        treat them as a recoverable pause rather than an unexpected error.
        """
        text = f"{self.message}\n{self.stderr}\n{self.stdout}".lower()
        return "conflict" in text


class NotARepositoryError(GitError):
    """Raised when path is not a git repository."""

    def __init__(self, path: str):
        super().__init__(
            message=f"Not a git repository: {path}",
        )
        self.details["path"] = path
        self.code = "NOT_A_REPOSITORY"


class UnresolvedConflictsError(GitError):
    """Raised when continuing an operation while conflicts remain."""

    def __init__(self, operation: str, files: Optional[list[str]] = None):
        files = files or []
        super().__init__(
            message=f"Cannot continue {operation}: there are still unresolved conflicts",
        )
        self.code = "UNRESOLVED_CONFLICTS"
        self.details["operation"] = operation
        self.details["files"] = files[:20]
        self.files = files


# =============================================================================
# Recovery Errors
# =============================================================================

class RecoveryError(GitPanicError):
    """Base exception for recovery operation errors."""
    pass


class OperationBlockedError(RecoveryError):
    """Raised when a safety check has blockers; nothing was executed."""

    def __init__(self, operation: str, result: "SafetyCheckResult"):
        reasons = "; ".join(result.blockers)
        super().__init__(
            message=f"Cannot {operation}: {reasons}",
            code="OPERATION_BLOCKED",
            details={
                "operation": operation,
                "blockers": list(result.blockers),
                "warnings": list(result.warnings),
            },
        )
        self.operation = operation
        self.result = result


class StepFailedError(RecoveryError):
    """Raised when a compound operation halts partway through.

    The repository is left exactly where the failing step stopped so the
    user can inspect it; nothing already done is rolled back.
    """

    def __init__(
        self,
        operation: str,
        step: int,
        step_name: str,
        reason: str,
        *,
        commit: Optional[str] = None,
        branch: Optional[str] = None,
        applied: Optional[list[str]] = None,
        paused: bool = False,
        original_error: Optional[Exception] = None,
    ):
        message = f"{operation} failed at step {step} ({step_name})"
        if commit:
            message += f" on commit {commit[:7]}"
        message += f": {reason}"
        details: dict[str, Any] = {
            "operation": operation,
            "step": step,
            "step_name": step_name,
            "paused": paused,
            "applied": list(applied or []),
        }
        if commit:
            details["commit"] = commit
        if branch:
            details["branch"] = branch
        if original_error:
            details["original_error"] = str(original_error)
            details["original_type"] = type(original_error).__name__
        super().__init__(message, "STEP_FAILED", details)
        self.operation = operation
        self.step = step
        self.step_name = step_name
        self.commit = commit
        self.branch = branch
        self.applied = list(applied or [])
        self.paused = paused
        self.original_error = original_error


# =============================================================================
# History Errors
# =============================================================================

class HistoryError(GitPanicError):
    """Base exception for action history errors."""
    pass


class NoUndoableActionError(HistoryError):
    """Raised when the history holds nothing that can be undone."""

    def __init__(self):
        super().__init__(
            message="No undoable actions in history",
            code="NO_UNDOABLE_ACTION",
        )


class StaleReferenceError(HistoryError):
    """Raised when a recorded commit hash no longer resolves."""

    def __init__(self, ref: str, action_id: Optional[str] = None):
        details = {"ref": ref}
        if action_id:
            details["action_id"] = action_id
        super().__init__(
            message=f"Recorded commit {ref[:12]} no longer exists (it may have been garbage-collected)",
            code="STALE_REFERENCE",
            details=details,
        )
        self.ref = ref


class WrongBranchError(HistoryError):
    """Raised when undoing would reset a branch other than the recorded one."""

    def __init__(self, expected: Optional[str], current: Optional[str], action_id: Optional[str] = None):
        expected_name = expected or "detached HEAD"
        current_name = current or "detached HEAD"
        details = {"expected": expected, "current": current}
        if action_id:
            details["action_id"] = action_id
        super().__init__(
            message=(
                f"The action was recorded on {expected_name} but HEAD is on {current_name}; "
                f"switch back to {expected_name} to undo it"
            ),
            code="WRONG_BRANCH",
            details=details,
        )
        self.expected = expected
        self.current = current


class PersistenceError(HistoryError):
    """Raised when the action history cannot be loaded or saved."""

    def __init__(
        self,
        operation: str,
        reason: str,
        original_error: Optional[Exception] = None,
    ):
        details = {"operation": operation, "reason": reason}
        if original_error:
            details["original_error"] = str(original_error)
        super().__init__(
            message=f"History {operation} failed: {reason}",
            code="PERSISTENCE_ERROR",
            details=details,
        )
