"""Persistence for the action history."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from gitpanic.core.models import RecordedAction
from gitpanic.errors import PersistenceError

logger = logging.getLogger(__name__)

_ACTIONS_ADAPTER = TypeAdapter(list[RecordedAction])

HISTORY_FORMAT_VERSION = 1


class HistoryStore(Protocol):
    """Loads and saves the ordered action log of one repository."""

    def load(self) -> list[RecordedAction]:
        ...

    def save(self, actions: list[RecordedAction]) -> None:
        ...


class MemoryHistoryStore:
    """Keeps the log in memory; useful for tests and embedding."""

    def __init__(self, actions: list[RecordedAction] | None = None):
        self._actions = [action.model_copy(deep=True) for action in actions or []]
        self.save_count = 0

    def load(self) -> list[RecordedAction]:
        return [action.model_copy(deep=True) for action in self._actions]

    def save(self, actions: list[RecordedAction]) -> None:
        self._actions = [action.model_copy(deep=True) for action in actions]
        self.save_count += 1


class JsonHistoryStore:
    """Stores the log as a JSON document, replacing the file atomically."""

    def __init__(self, path: str | Path):
        """Initialize the store.

        Args:
            path: Location of the JSON file; parent directories are created on save.
        """
        self.path = Path(path).expanduser()

    def load(self) -> list[RecordedAction]:
        """Read the stored log. A missing file is an empty history."""
        if not self.path.exists():
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
            actions = _ACTIONS_ADAPTER.validate_python(document.get("actions", []))
        except (OSError, ValueError, AttributeError, ValidationError) as e:
            raise PersistenceError("load", f"could not read {self.path}", e) from e

        logger.info(f"Loaded {len(actions)} actions from {self.path}")
        return actions

    def save(self, actions: list[RecordedAction]) -> None:
        """Write the whole log, so readers never see a half-written file."""
        document = {
            "version": HISTORY_FORMAT_VERSION,
            "actions": _ACTIONS_ADAPTER.dump_python(actions, mode="json"),
        }

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=".history-", suffix=".json"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceError("save", f"could not write {self.path}", e) from e

        logger.debug(f"Saved {len(actions)} actions to {self.path}")
