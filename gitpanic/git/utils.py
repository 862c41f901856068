"""Git utility functions for GitPanic."""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path
from typing import Optional

from gitpanic.errors import GitError

logger = logging.getLogger(__name__)

# Unit separator keeps free-text fields (subjects, reflog messages) intact
FIELD_SEP = "\x1f"

COMMIT_FORMAT = FIELD_SEP.join(["%H", "%an", "%ae", "%aI", "%s"])
REFLOG_FORMAT = FIELD_SEP.join(["%H", "%gd", "%gs"])
STASH_FORMAT = FIELD_SEP.join(["%gd", "%H", "%gs"])

HASH_PATTERN = re.compile(r"^[0-9a-f]{7,40}$")
CHECKOUT_PATTERN = re.compile(r"checkout: moving from (\S+) to (\S+)")
STASH_SUBJECT_PATTERN = re.compile(r"^(?:WIP on|On) ([^:]+): (.*)$")

# Escapes git uses when it quotes a path (see core.quotePath)
PATH_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "t": "\t",
    "n": "\n",
    "v": "\v",
    "f": "\f",
    "r": "\r",
    '"': '"',
    "\\": "\\",
}


def find_git_root(start_path: Path | str) -> Optional[Path]:
    """Find the root of a git repository.

    Walks up the directory tree from start_path looking for a .git directory.

    Args:
        start_path: Path to start searching from.

    Returns:
        Path to the repository root, or None if not in a git repository.
    """
    path = Path(start_path).resolve()

    # Check current path and parents
    for parent in [path] + list(path.parents):
        git_dir = parent / ".git"
        if git_dir.exists():
            return parent

    return None


def run_git_command(
    args: list[str],
    cwd: Path | str | None = None,
    timeout: Optional[float] = None,
    check: bool = True,
) -> subprocess.CompletedProcess:
    """Run a git command and return the result.

    Args:
        args: Git command arguments (without 'git' prefix).
        cwd: Working directory for the command.
        timeout: Command timeout in seconds (None waits indefinitely).
        check: If True, raise GitError on non-zero exit.

    Returns:
        CompletedProcess with stdout/stderr.

    Raises:
        GitError: If check=True and command fails.
        TimeoutError: If command times out.
    """
    cmd = ["git"] + args

    logger.debug(f"Running git command: {' '.join(cmd)}")

    try:
        result = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            timeout=timeout,
        )

        if check and result.returncode != 0:
            error_msg = (
                result.stderr.strip()
                or result.stdout.strip()
                or f"Git command failed with exit code {result.returncode}"
            )
            raise GitError(
                error_msg,
                returncode=result.returncode,
                stderr=result.stderr,
                stdout=result.stdout,
                args=args,
            )

        return result

    except subprocess.TimeoutExpired:
        raise TimeoutError(f"Git command timed out after {timeout}s: {' '.join(cmd)}")


def parse_git_status(porcelain_output: str) -> dict:
    """Parse git status --porcelain=v1 -z output.

    Entries are NUL-terminated and paths are never quoted. A rename or
    copy entry is followed by an extra field holding the source path.

    Args:
        porcelain_output: Output from 'git status --porcelain=v1 -z'.

    Returns:
        Dictionary with categorized file lists.
    """
    staged = []
    modified = []
    untracked = []
    deleted = []
    conflicted = []

    entries = iter(porcelain_output.split("\0"))
    for entry in entries:
        # Porcelain format: XY filename
        # X = staged status, Y = working tree status
        if len(entry) < 4:
            continue

        x, y = entry[0], entry[1]
        filename = entry[3:]

        # Renames and copies carry the source path as the next field
        if x in "RC" or y in "RC":
            next(entries, None)

        # Unmerged paths are reported only as conflicts
        if x == "U" or y == "U" or (x == "A" and y == "A") or (x == "D" and y == "D"):
            conflicted.append(filename)
            continue

        if x == "?" and y == "?":
            untracked.append(filename)
            continue

        # Staged changes (X column)
        if x == "A":
            staged.append(("added", filename))
        elif x == "M":
            staged.append(("modified", filename))
        elif x == "D":
            staged.append(("deleted", filename))
        elif x == "R":
            staged.append(("renamed", filename))
        elif x == "C":
            staged.append(("copied", filename))

        # Working tree changes (Y column)
        if y == "M":
            modified.append(filename)
        elif y == "D":
            deleted.append(filename)

    return {
        "staged": staged,
        "modified": modified,
        "untracked": untracked,
        "deleted": deleted,
        "conflicted": conflicted,
    }


def parse_commit_line(line: str, sep: str = FIELD_SEP) -> dict:
    """Parse a formatted git log line.

    Args:
        line: Line from git log with COMMIT_FORMAT.
        sep: Separator used in format string.

    Returns:
        Dictionary with commit information.
    """
    parts = line.strip("\n").split(sep)
    if len(parts) >= 5:
        return {
            "hash": parts[0].strip(),
            "short_hash": parts[0].strip()[:7],
            "author": parts[1],
            "email": parts[2],
            "date": parts[3],
            "message": sep.join(parts[4:]),
        }
    return {}


def parse_reflog_line(line: str, sep: str = FIELD_SEP) -> dict:
    """Parse a line of ``git reflog`` output produced with REFLOG_FORMAT.

    The reflog subject looks like ``checkout: moving from a to b``; the
    part before the first colon is reported as the action.
    """
    parts = line.strip("\n").split(sep)
    if len(parts) < 3 or not parts[0]:
        return {}

    message = sep.join(parts[2:])
    action, _, _ = message.partition(":")
    return {
        "hash": parts[0].strip(),
        "selector": parts[1],
        "action": action.strip(),
        "message": message,
    }


def parse_stash_line(line: str, sep: str = FIELD_SEP) -> dict:
    """Parse a line of ``git stash list`` output produced with STASH_FORMAT."""
    parts = line.strip("\n").split(sep)
    if len(parts) < 3:
        return {}

    index_match = re.search(r"\{(\d+)\}", parts[0])
    if not index_match:
        return {}

    subject = sep.join(parts[2:])
    branch = ""
    message = subject
    subject_match = STASH_SUBJECT_PATTERN.match(subject)
    if subject_match:
        branch = subject_match.group(1)
        message = subject_match.group(2)

    return {
        "index": int(index_match.group(1)),
        "hash": parts[1].strip(),
        "branch": branch,
        "message": message,
    }


def unquote_path(path: str) -> str:
    """Undo git's C-style quoting of a path.

    Paths containing a double quote, a backslash or control characters
    (and non-ASCII bytes unless core.quotePath is off) are printed inside
    double quotes with backslash escapes. Octal escapes are raw bytes of
    the UTF-8 encoded name. Unquoted paths are returned unchanged.
    """
    if len(path) < 2 or not (path.startswith('"') and path.endswith('"')):
        return path

    body = path[1:-1]
    raw = bytearray()
    i = 0
    while i < len(body):
        char = body[i]
        if char == "\\" and i + 1 < len(body):
            escape = body[i + 1]
            if escape in "01234567":
                raw.append(int(body[i + 1:i + 4], 8))
                i += 4
                continue
            raw.extend(PATH_ESCAPES.get(escape, escape).encode("utf-8"))
            i += 2
            continue
        raw.extend(char.encode("utf-8"))
        i += 1
    return raw.decode("utf-8", errors="surrogateescape")


def parse_clean_dry_run(output: str) -> list[str]:
    """Extract paths from ``git clean -n`` output ("Would remove <path>")."""
    paths = []
    for line in output.split("\n"):
        line = line.strip()
        if line.startswith("Would remove "):
            paths.append(unquote_path(line[len("Would remove "):]))
    return paths


def parse_name_only_log(output: str, sep: str = FIELD_SEP) -> list[dict]:
    """Parse ``git log --name-only`` output whose header lines use ``%H<sep>%s``.

    Returns one entry per (commit, path) pair, newest commit first.
    """
    entries = []
    current: dict = {}

    for line in output.split("\n"):
        if not line.strip():
            continue
        if sep in line:
            commit_hash, _, subject = line.partition(sep)
            current = {"hash": commit_hash.strip(), "message": subject}
        elif current:
            entries.append({"path": unquote_path(line.strip()), **current})

    return entries
