"""Tests for Git utility functions."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from gitpanic.git.utils import (
    CHECKOUT_PATTERN,
    FIELD_SEP,
    HASH_PATTERN,
    GitError,
    find_git_root,
    parse_clean_dry_run,
    parse_commit_line,
    parse_git_status,
    parse_name_only_log,
    parse_reflog_line,
    parse_stash_line,
    run_git_command,
    unquote_path,
)

S = FIELD_SEP


class TestGitError:
    """Tests for GitError exception."""

    def test_git_error_with_returncode(self):
        """Test GitError with return code and stderr."""
        error = GitError("Failed", returncode=128, stderr="fatal error", args=["reset"])
        assert error.returncode == 128
        assert error.stderr == "fatal error"
        assert error.code == "GIT_ERROR"
        assert error.details["command"] == "git reset"

    def test_conflict_detected_in_stderr(self):
        """Test a conflict mentioned only in stderr is recognised."""
        error = GitError("cherry-pick failed", stderr="CONFLICT (content): Merge conflict in a.txt")
        assert error.is_conflict is True

    def test_conflict_detected_in_stdout(self):
        """Test git reporting the conflict on stdout is recognised."""
        error = GitError("failed", stdout="Auto-merging a.txt\nCONFLICT (content)")
        assert error.is_conflict is True

    def test_other_failures_are_not_conflicts(self):
        """Test an ambiguous-ref failure is not a conflict."""
        error = GitError("fatal: ambiguous argument 'nope'", stderr="fatal: ambiguous argument")
        assert error.is_conflict is False


class TestFindGitRoot:
    """Tests for find_git_root function."""

    def test_find_git_root_exists(self, tmp_path):
        """Test finding git root from a subdirectory."""
        (tmp_path / ".git").mkdir()
        subdir = tmp_path / "src" / "lib"
        subdir.mkdir(parents=True)

        assert find_git_root(subdir) == tmp_path

    def test_find_git_root_with_file(self, tmp_path):
        """Test .git as file (submodule or worktree)."""
        (tmp_path / ".git").write_text("gitdir: /path/to/actual/git")
        assert find_git_root(tmp_path) == tmp_path


class TestRunGitCommand:
    """Tests for run_git_command function."""

    @patch("subprocess.run")
    def test_run_git_command_success(self, mock_run, tmp_path):
        """Test successful git command execution."""
        mock_run.return_value = MagicMock(stdout="output", stderr="", returncode=0)

        result = run_git_command(["status"], cwd=tmp_path)
        assert result.stdout == "output"
        assert mock_run.call_args[0][0] == ["git", "status"]

    @patch("subprocess.run")
    def test_no_timeout_by_default(self, mock_run, tmp_path):
        """Test primitives wait indefinitely unless a timeout is given."""
        mock_run.return_value = MagicMock(stdout="", stderr="", returncode=0)

        run_git_command(["fetch", "--all"], cwd=tmp_path)
        assert mock_run.call_args.kwargs["timeout"] is None

    @patch("subprocess.run")
    def test_run_git_command_error(self, mock_run, tmp_path):
        """Test git command with non-zero exit."""
        mock_run.return_value = MagicMock(
            stdout="",
            stderr="fatal: not a git repository",
            returncode=128,
        )

        with pytest.raises(GitError) as exc_info:
            run_git_command(["status"], cwd=tmp_path)

        assert exc_info.value.message == "fatal: not a git repository"
        assert exc_info.value.git_args == ["status"]

    @patch("subprocess.run")
    def test_error_message_falls_back_to_stdout(self, mock_run, tmp_path):
        """Test failures reported on stdout (cherry-pick conflicts) keep their text."""
        mock_run.return_value = MagicMock(
            stdout="CONFLICT (content): Merge conflict in a.txt\n",
            stderr="",
            returncode=1,
        )

        with pytest.raises(GitError) as exc_info:
            run_git_command(["cherry-pick", "abc1234"], cwd=tmp_path)

        assert "CONFLICT" in exc_info.value.message
        assert exc_info.value.is_conflict

    @patch("subprocess.run")
    def test_error_message_falls_back_to_exit_code(self, mock_run, tmp_path):
        """Test a silent failure still has a message."""
        mock_run.return_value = MagicMock(stdout="", stderr="", returncode=3)

        with pytest.raises(GitError) as exc_info:
            run_git_command(["status"], cwd=tmp_path)

        assert "exit code 3" in exc_info.value.message

    @patch("subprocess.run")
    def test_run_git_command_timeout(self, mock_run, tmp_path):
        """Test git command timeout."""
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="git", timeout=30)

        with pytest.raises(TimeoutError) as exc_info:
            run_git_command(["status"], cwd=tmp_path, timeout=30)

        assert "timed out" in str(exc_info.value).lower()

    @patch("subprocess.run")
    def test_run_git_command_no_check(self, mock_run, tmp_path):
        """Test git command with check=False."""
        mock_run.return_value = MagicMock(stdout="", stderr="error", returncode=1)

        result = run_git_command(["status"], cwd=tmp_path, check=False)
        assert result.returncode == 1


class TestParseGitStatus:
    """Tests for parse_git_status function."""

    def test_parse_clean_status(self):
        """Test parsing clean repository status."""
        result = parse_git_status("")
        assert all(result[key] == [] for key in result)

    def test_parse_staged_and_unstaged(self):
        """Test a file can be both staged and modified."""
        result = parse_git_status("MM both.py\0A  new.py\0 D gone.py\0")

        assert ("modified", "both.py") in result["staged"]
        assert "both.py" in result["modified"]
        assert ("added", "new.py") in result["staged"]
        assert "gone.py" in result["deleted"]

    def test_parse_untracked(self):
        """Test untracked files are only reported as untracked."""
        result = parse_git_status("?? untracked.py\0")
        assert result["untracked"] == ["untracked.py"]
        assert result["staged"] == []

    def test_parse_conflicts_only_as_conflicts(self):
        """Test unmerged paths are not also reported as staged."""
        result = parse_git_status("UU both.py\0AA added.py\0DD gone.py\0")
        assert result["conflicted"] == ["both.py", "added.py", "gone.py"]
        assert result["staged"] == []
        assert result["deleted"] == []

    def test_parse_rename(self):
        """Test renamed files report the new name and skip the source field."""
        result = parse_git_status("R  new.py\0old.py\0?? other.py\0")
        assert result["staged"] == [("renamed", "new.py")]
        assert result["untracked"] == ["other.py"]

    def test_parse_paths_are_not_quoted(self):
        """Test names with spaces, quotes and arrows come through verbatim."""
        result = parse_git_status(' M a b.txt\0?? say "hi".txt\0 M x -> y\0')
        assert result["modified"] == ["a b.txt", "x -> y"]
        assert result["untracked"] == ['say "hi".txt']


class TestParseLines:
    """Tests for the formatted-output parsers."""

    def test_parse_commit_line(self):
        """Test parsing a COMMIT_FORMAT line."""
        line = f"abc1234def{S}Jane{S}jane@test.com{S}2024-01-15T10:30:00+00:00{S}Fix: the bug"
        parsed = parse_commit_line(line)

        assert parsed["hash"] == "abc1234def"
        assert parsed["short_hash"] == "abc1234"
        assert parsed["author"] == "Jane"
        assert parsed["message"] == "Fix: the bug"

    def test_parse_commit_line_too_short(self):
        """Test malformed lines are skipped."""
        assert parse_commit_line("garbage") == {}

    def test_parse_reflog_line(self):
        """Test the action is the part before the first colon."""
        parsed = parse_reflog_line(f"abc1234{S}HEAD@{{2}}{S}checkout: moving from feature to main")

        assert parsed["hash"] == "abc1234"
        assert parsed["selector"] == "HEAD@{2}"
        assert parsed["action"] == "checkout"
        assert parsed["message"] == "checkout: moving from feature to main"

    def test_parse_stash_line_wip(self):
        """Test a default stash subject."""
        parsed = parse_stash_line(f"stash@{{1}}{S}def5678{S}WIP on main: abc1234 Add feature")

        assert parsed["index"] == 1
        assert parsed["hash"] == "def5678"
        assert parsed["branch"] == "main"
        assert parsed["message"] == "abc1234 Add feature"

    def test_parse_stash_line_named(self):
        """Test a stash created with a message and a slash in the branch."""
        parsed = parse_stash_line(f"stash@{{0}}{S}def5678{S}On feature/x: half done")
        assert parsed["branch"] == "feature/x"
        assert parsed["message"] == "half done"

    def test_parse_clean_dry_run(self):
        """Test paths are extracted from git clean -n output."""
        output = "Would remove build/\nWould remove notes.txt\n"
        assert parse_clean_dry_run(output) == ["build/", "notes.txt"]

    def test_parse_clean_dry_run_quoted(self):
        """Test quoted names are unquoted."""
        output = 'Would remove "say \\"hi\\".txt"\n'
        assert parse_clean_dry_run(output) == ['say "hi".txt']

    def test_parse_name_only_log(self):
        """Test one entry per deleted path, keeping the commit."""
        output = f"aaa111{S}Remove docs\n\ndocs/a.md\ndocs/b.md\nbbb222{S}Drop config\n\nconfig.yaml\n"
        entries = parse_name_only_log(output)

        assert entries == [
            {"path": "docs/a.md", "hash": "aaa111", "message": "Remove docs"},
            {"path": "docs/b.md", "hash": "aaa111", "message": "Remove docs"},
            {"path": "config.yaml", "hash": "bbb222", "message": "Drop config"},
        ]


class TestUnquotePath:
    """Tests for unquote_path."""

    @pytest.mark.parametrize("quoted,expected", [
        ("plain.txt", "plain.txt"),
        ("a b.txt", "a b.txt"),
        (r'"say \"hi\".txt"', 'say "hi".txt'),
        (r'"back\\slash"', "back\\slash"),
        (r'"tab\there"', "tab\there"),
        (r'"caf\303\251.md"', "caf\u00e9.md"),
    ])
    def test_unquote(self, quoted, expected):
        """Test git's C-style quoting is reversed."""
        assert unquote_path(quoted) == expected


class TestPatterns:
    """Tests for the reflog patterns."""

    def test_checkout_pattern(self):
        """Test the source and destination are captured."""
        match = CHECKOUT_PATTERN.search("checkout: moving from feature/x to main")
        assert match.group(1) == "feature/x"
        assert match.group(2) == "main"

    @pytest.mark.parametrize("value,expected", [
        ("abc1234", True),
        ("a" * 40, True),
        ("abc123", False),
        ("main", False),
        ("feature-abc1234", False),
    ])
    def test_hash_pattern(self, value, expected):
        """Test bare hashes are told apart from branch names."""
        assert bool(HASH_PATTERN.match(value)) is expected
