"""Pytest configuration and fixtures for GitPanic tests."""

import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Callable, Generator, Optional, Sequence

import pytest

from gitpanic.core import (
    ActionLedger,
    MemoryHistoryStore,
    RecoverySession,
    RepositoryInspector,
)
from gitpanic.git.repository import GitRepository

GIT_ENV = {
    "GIT_AUTHOR_NAME": "Test User",
    "GIT_AUTHOR_EMAIL": "test@example.com",
    "GIT_COMMITTER_NAME": "Test User",
    "GIT_COMMITTER_EMAIL": "test@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
}


def git(path: Path, *args: str) -> str:
    """Run git in path for test setup and return stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=path,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


class GitRepoFactory:
    """A real repository in a temporary directory with helpers for setup."""

    def __init__(self, path: Path):
        self.path = path

    def git(self, *args: str) -> str:
        return git(self.path, *args)

    def write(self, name: str, content: str) -> Path:
        file_path = self.path / name
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding="utf-8")
        return file_path

    def commit(self, message: str, files: Optional[dict[str, str]] = None) -> str:
        """Write files (default: one file named after the message) and commit them."""
        if files is None:
            slug = message.lower().replace(" ", "_")
            files = {f"{slug}.txt": f"{message}\n"}
        for name, content in files.items():
            self.write(name, content)
        self.git("add", "--", *files.keys())
        self.git("commit", "-q", "-m", message)
        return self.head()

    def commits(self, count: int, prefix: str = "commit") -> list[str]:
        return [self.commit(f"{prefix} {n}") for n in range(1, count + 1)]

    def head(self) -> str:
        return self.git("rev-parse", "HEAD")

    def rev(self, ref: str) -> str:
        return self.git("rev-parse", ref)

    def branch(self) -> str:
        return self.git("branch", "--show-current")

    def log_messages(self, ref: str = "HEAD") -> list[str]:
        output = self.git("log", "--format=%s", ref)
        return output.split("\n") if output else []

    def add_origin(self) -> Path:
        """Create a bare origin, push the current branch and track it."""
        origin = self.path.parent / f"{self.path.name}-origin.git"
        git(self.path.parent, "init", "-q", "--bare", str(origin))
        self.git("remote", "add", "origin", str(origin))
        self.git("push", "-q", "-u", "origin", self.branch())
        return origin


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def git_env(monkeypatch: pytest.MonkeyPatch, temp_dir: Path) -> None:
    """Isolate git from the user's global configuration."""
    for key, value in GIT_ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv("HOME", str(temp_dir))
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(temp_dir / "gitconfig"))


@pytest.fixture
def git_repo(temp_dir: Path, git_env: None) -> GitRepoFactory:
    """An empty repository on branch main."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    path = temp_dir / "repo"
    path.mkdir()
    git(path, "init", "-q")
    git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    git(path, "config", "user.name", "Test User")
    git(path, "config", "user.email", "test@example.com")
    git(path, "config", "commit.gpgsign", "false")
    return GitRepoFactory(path)


@pytest.fixture
def memory_store() -> MemoryHistoryStore:
    return MemoryHistoryStore()


@pytest.fixture
def session_factory(
    memory_store: MemoryHistoryStore,
) -> Callable[..., RecoverySession]:
    """Build a RecoverySession on a real repository with an in-memory history."""

    def factory(repo: GitRepoFactory, max_actions: int = 50) -> RecoverySession:
        git_repo = GitRepository(repo.path)
        inspector = RepositoryInspector(git_repo)
        ledger = ActionLedger(inspector, memory_store, max_actions)
        return RecoverySession(git_repo, ledger, inspector)

    return factory


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Remove GITPANIC_* variables for the duration of a test."""
    original = {k: v for k, v in os.environ.items() if k.startswith("GITPANIC_")}
    for key in original:
        del os.environ[key]

    yield

    for key in [k for k in os.environ if k.startswith("GITPANIC_")]:
        del os.environ[key]
    os.environ.update(original)


class ScriptedPrompter:
    """Prompter that answers from queues and records what it was asked."""

    def __init__(
        self,
        choices: Sequence[Optional[int]] = (),
        texts: Sequence[Optional[str]] = (),
        confirms: Sequence[bool] = (),
    ):
        self.choices = list(choices)
        self.texts = list(texts)
        self.confirms = list(confirms)
        self.asked: list[str] = []
        self.warnings: list[str] = []
        self.notifications: list[str] = []

    def ask_choice(self, title, options):
        self.asked.append(title)
        return self.choices.pop(0)

    def ask_text(self, prompt, validator=None, default=None):
        self.asked.append(prompt)
        answer = self.texts.pop(0)
        if answer is not None and validator is not None:
            error = validator(answer)
            assert error is None, f"scripted answer {answer!r} rejected: {error}"
        return answer

    def ask_yes_no(self, message, warnings=()):
        self.asked.append(message)
        self.warnings.extend(warnings)
        return self.confirms.pop(0)

    def notify(self, message, level="info"):
        self.notifications.append(message)


@pytest.fixture
def prompter() -> ScriptedPrompter:
    return ScriptedPrompter()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Point the user config location at an empty temporary directory."""
    config_dir = tmp_path / ".gitpanic"
    monkeypatch.setattr("gitpanic.config.CONFIG_DIR", config_dir)
    monkeypatch.setattr("gitpanic.config.CONFIG_FILE", config_dir / "config.yaml")
    return config_dir
