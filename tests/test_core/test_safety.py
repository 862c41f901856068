"""Tests for the safety evaluator."""

from unittest.mock import MagicMock

import pytest

from gitpanic.core.inspector import RepositoryInspector
from gitpanic.core.models import (
    OngoingOperation,
    RecoveryOperation,
    RepositoryState,
    ResetMode,
    SafetyCheckResult,
)
from gitpanic.core.safety import SafetyEvaluator, available_operations, validate_branch_name
from gitpanic.git.repository import GitCommit


def make_commit(n: int, message: str = "") -> GitCommit:
    hash_ = f"{n:040x}"
    return GitCommit(hash_, hash_[:7], "Test", "t@x", "2024-01-01", message or f"commit {n}")


@pytest.fixture
def inspector():
    """An inspector with three local commits, a clean tree and nothing pushed."""
    mock = MagicMock(spec=RepositoryInspector)
    commits = [make_commit(3), make_commit(2), make_commit(1)]
    mock.recent_commits.side_effect = lambda count=10: commits[:count]
    mock.last_commit.return_value = commits[0]
    mock.resolves.side_effect = lambda ref: ref in ("HEAD~1", "HEAD~2")
    mock.has_tracked_changes.return_value = False
    mock.is_pushed.return_value = False
    mock.branch_exists.side_effect = lambda name: name in ("main", "develop")
    mock.current_branch.return_value = "main"
    mock.conflicted_files.return_value = []
    return mock


@pytest.fixture
def evaluator(inspector):
    return SafetyEvaluator(inspector)


class TestSafetyCheckResult:
    """Tests for SafetyCheckResult."""

    def test_safe_iff_no_blockers(self):
        """Test warnings alone never make a result unsafe."""
        assert SafetyCheckResult().safe is True
        assert SafetyCheckResult(warnings=["careful"]).safe is True
        assert SafetyCheckResult(blockers=["no"]).safe is False

    def test_merge_keeps_everything(self):
        """Test merging concatenates warnings and blockers."""
        merged = SafetyCheckResult(warnings=["w1"]).merge(SafetyCheckResult(blockers=["b1"], warnings=["w2"]))
        assert merged.warnings == ["w1", "w2"]
        assert merged.blockers == ["b1"]
        assert merged.safe is False


class TestCheckBeforeReset:
    """Tests for check_before_reset."""

    def test_clean_soft_reset(self, evaluator):
        """Test undoing one unpushed commit is safe with no warnings."""
        result = evaluator.check_before_reset(ResetMode.SOFT, 1)
        assert result.safe
        assert result.warnings == []

    @pytest.mark.parametrize("count", [4, 5, 100])
    def test_more_commits_than_exist_blocks(self, evaluator, count):
        """Test asking for more commits than exist is a blocker."""
        result = evaluator.check_before_reset(ResetMode.SOFT, count)
        assert not result.safe
        assert result.blockers[0] == f"Only 3 commits available, cannot undo {count}"

    def test_removing_root_commit_blocks(self, evaluator):
        """Test a reset has to land on an existing commit."""
        result = evaluator.check_before_reset(ResetMode.MIXED, 3)
        assert not result.safe
        assert "first commit" in result.blockers[0]

    def test_zero_count_blocks(self, evaluator):
        """Test a non-positive count is rejected."""
        assert not evaluator.check_before_reset(ResetMode.SOFT, 0).safe

    def test_hard_reset_with_changes_warns(self, evaluator, inspector):
        """Test uncommitted changes produce a warning, not a blocker."""
        inspector.has_tracked_changes.return_value = True

        result = evaluator.check_before_reset(ResetMode.HARD, 1)

        assert result.safe
        assert result.warnings == ["Hard reset will discard all uncommitted changes"]

    def test_soft_reset_with_changes_does_not_warn(self, evaluator, inspector):
        """Test only hard resets warn about uncommitted changes."""
        inspector.has_tracked_changes.return_value = True
        assert evaluator.check_before_reset(ResetMode.SOFT, 1).warnings == []

    def test_warning_per_pushed_commit(self, evaluator, inspector):
        """Test each pushed commit in range gets its own warning."""
        inspector.is_pushed.return_value = True

        result = evaluator.check_before_reset(ResetMode.SOFT, 2)

        assert result.safe
        assert result.warnings == [
            'Commit "commit 3" has been pushed. Undoing will require force push.',
            'Commit "commit 2" has been pushed. Undoing will require force push.',
        ]

    def test_pushed_message_truncated(self, evaluator, inspector):
        """Test long commit messages are cut to 50 characters."""
        commits = [make_commit(9, "x" * 80)]
        inspector.recent_commits.side_effect = lambda count=10: commits
        inspector.is_pushed.return_value = True

        warning = evaluator.check_before_reset(ResetMode.SOFT, 1).warnings[0]
        assert f'"{"x" * 50}"' in warning


class TestCheckBeforeAmend:
    """Tests for check_before_amend."""

    def test_no_commits_blocks(self, evaluator, inspector):
        """Test amending an empty repository is impossible."""
        inspector.last_commit.return_value = None
        result = evaluator.check_before_amend()
        assert result.blockers == ["No commits to amend"]

    def test_pushed_commit_warns(self, evaluator, inspector):
        """Test amending a pushed commit asks for confirmation."""
        inspector.is_pushed.return_value = True
        result = evaluator.check_before_amend()
        assert result.safe
        assert result.warnings == ["This commit has been pushed. Amending will require a force push."]


class TestBranchNames:
    """Tests for branch name validation."""

    @pytest.mark.parametrize("name", ["feature/x", "fix_123", "release-1", "A/b/C"])
    def test_valid_names(self, name):
        """Test accepted characters."""
        assert validate_branch_name(name) is None

    @pytest.mark.parametrize("name", ["", "   ", "has space", "bad~name", "what?", "dots.too"])
    def test_invalid_names(self, name):
        """Test rejected names produce a message."""
        assert validate_branch_name(name) is not None

    def test_existing_branch_blocks(self, evaluator):
        """Test a name collision is a blocker."""
        result = evaluator.check_before_branch_create("develop")
        assert result.blockers == ['Branch "develop" already exists']

    def test_invalid_characters_block(self, evaluator):
        """Test invalid characters are a blocker."""
        result = evaluator.check_before_branch_create("my branch")
        assert not result.safe

    def test_new_valid_branch_is_safe(self, evaluator):
        """Test a fresh, valid name passes."""
        assert evaluator.check_before_branch_create("feature/x").safe


class TestCompoundChecks:
    """Tests for squash, move and continue checks."""

    def test_squash_needs_two_commits(self, evaluator):
        """Test squashing a single commit is blocked."""
        assert not evaluator.check_before_squash(1).safe

    def test_squash_uses_reset_check(self, evaluator):
        """Test squashing more commits than exist is blocked."""
        result = evaluator.check_before_squash(5)
        assert "Only 3 commits available, cannot undo 5" in result.blockers

    def test_move_to_new_branch(self, evaluator):
        """Test the common case passes."""
        assert evaluator.check_before_move(1, "feature/x", create=True).safe

    def test_move_to_current_branch_blocks(self, evaluator):
        """Test moving commits onto the branch they are on is blocked."""
        result = evaluator.check_before_move(1, "main", create=False)
        assert any("current branch" in b for b in result.blockers)

    def test_move_to_missing_existing_branch_blocks(self, evaluator):
        """Test the target must exist when not creating it."""
        result = evaluator.check_before_move(1, "nowhere", create=False)
        assert 'Branch "nowhere" does not exist' in result.blockers

    def test_move_to_existing_name_when_creating_blocks(self, evaluator):
        """Test creating a target that already exists is blocked."""
        result = evaluator.check_before_move(1, "develop", create=True)
        assert 'Branch "develop" already exists' in result.blockers

    def test_move_from_detached_head_blocks(self, evaluator, inspector):
        """Test there is no source branch to reset when detached."""
        inspector.current_branch.return_value = None
        result = evaluator.check_before_move(1, "feature/x", create=True)
        assert "Cannot move commits from a detached HEAD" in result.blockers

    def test_move_warns_about_uncommitted_changes(self, evaluator, inspector):
        """Test the hard reset of the source branch is checked too."""
        inspector.has_tracked_changes.return_value = True
        result = evaluator.check_before_move(1, "feature/x", create=True)
        assert result.safe
        assert "Hard reset will discard all uncommitted changes" in result.warnings

    def test_continue_without_operation_blocks(self, evaluator):
        """Test there must be something to continue."""
        assert not evaluator.check_before_continue(OngoingOperation.NONE).safe

    def test_bisect_cannot_continue(self, evaluator):
        """Test bisect only supports abort."""
        result = evaluator.check_before_continue(OngoingOperation.BISECT)
        assert result.blockers == ["Bisect cannot be continued, only aborted"]

    def test_continue_with_conflicts_blocks(self, evaluator, inspector):
        """Test unresolved conflicts block continue."""
        inspector.conflicted_files.return_value = ["a.txt"]
        result = evaluator.check_before_continue(OngoingOperation.MERGE)
        assert result.blockers == ["There are still 1 unresolved conflict(s)"]

    def test_abort_without_operation_blocks(self, evaluator):
        """Test aborting nothing is blocked."""
        assert not evaluator.check_before_abort(OngoingOperation.NONE).safe
        assert evaluator.check_before_abort(OngoingOperation.REBASE).safe

    def test_reset_to_unknown_ref_blocks(self, evaluator):
        """Test resetting to a ref that does not resolve is blocked."""
        result = evaluator.check_before_reset_to("deadbeef")
        assert not result.safe

    def test_checks_never_mutate(self, evaluator, inspector):
        """Test the evaluator only calls read-only inspector queries."""
        evaluator.check_before_reset(ResetMode.HARD, 2)
        evaluator.check_before_move(1, "feature/x", create=True)

        called = {call[0] for call in inspector.method_calls}
        assert called <= {
            "recent_commits",
            "resolves",
            "has_tracked_changes",
            "is_pushed",
            "current_branch",
            "branch_exists",
        }


class TestAvailableOperations:
    """Tests for available_operations."""

    def make_state(self, **overrides) -> RepositoryState:
        values = dict(branch="main", head="a" * 40)
        values.update(overrides)
        return RepositoryState(**values)

    def test_clean_repository(self):
        """Test a clean repository with commits."""
        ops = available_operations(self.make_state())

        assert ops[RecoveryOperation.UNDO_COMMIT] is True
        assert ops[RecoveryOperation.AMEND] is False
        assert ops[RecoveryOperation.UNSTAGE] is False
        assert ops[RecoveryOperation.CLEAN] is False
        assert ops[RecoveryOperation.ABORT] is False
        assert ops[RecoveryOperation.FIX_DETACHED] is False
        assert ops[RecoveryOperation.FORCE_PUSH_RECOVERY] is False
        assert ops[RecoveryOperation.UNDO_ACTION] is False

    def test_every_operation_is_classified(self):
        """Test no recovery operation is left out."""
        assert set(available_operations(self.make_state())) == set(RecoveryOperation)

    def test_empty_repository(self):
        """Test nothing commit-related is offered without commits."""
        ops = available_operations(self.make_state(head=None))
        assert ops[RecoveryOperation.UNDO_COMMIT] is False
        assert ops[RecoveryOperation.RECOVER_FILE] is False
        assert ops[RecoveryOperation.RECOVER_BRANCH] is True

    def test_detached_head(self):
        """Test detached HEAD enables the fix and disables moving commits."""
        ops = available_operations(self.make_state(branch=None))
        assert ops[RecoveryOperation.FIX_DETACHED] is True
        assert ops[RecoveryOperation.MOVE_COMMITS] is False

    def test_paused_merge_with_conflicts(self):
        """Test abort is offered but continue waits for resolution."""
        ops = available_operations(
            self.make_state(ongoing_operation=OngoingOperation.MERGE, conflicted=["a.txt"])
        )
        assert ops[RecoveryOperation.ABORT] is True
        assert ops[RecoveryOperation.CONTINUE] is False

    def test_working_tree_changes(self):
        """Test staged and untracked files enable their fixes."""
        ops = available_operations(
            self.make_state(staged=["a.py"], untracked=["b.txt"], has_remote=True),
            has_undoable_action=True,
        )
        assert ops[RecoveryOperation.AMEND] is True
        assert ops[RecoveryOperation.UNSTAGE] is True
        assert ops[RecoveryOperation.DISCARD] is True
        assert ops[RecoveryOperation.CLEAN] is True
        assert ops[RecoveryOperation.FORCE_PUSH_RECOVERY] is True
        assert ops[RecoveryOperation.UNDO_ACTION] is True
