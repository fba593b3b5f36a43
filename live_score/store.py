# live_score/store.py
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from live_score.models import AppState

log = logging.getLogger(__name__)


class PersistenceFailure(Exception):
    """Raised when the backing store cannot write the state blob."""
    pass


class StateStore:
    """
    Opaque read-modify-write unit for the whole application state.

    - load(): never raises; falls back to an empty blob
    - save(): raises PersistenceFailure on write errors
    """

    def load(self) -> AppState:
        raise NotImplementedError

    def save(self, state: AppState) -> None:
        raise NotImplementedError


class JsonFileStore(StateStore):
    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> AppState:
        if not self.path.exists():
            log.info("No state file at %s, starting empty", self.path)
            return AppState()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = f.read()
            data: Dict[str, Any] = json.loads(raw or "{}")
            if not isinstance(data, dict):
                raise ValueError("state root must be a JSON object")
            return AppState.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            log.warning("Could not load state from %s (%s), starting empty", self.path, e)
            return AppState()

    def save(self, state: AppState) -> None:
        payload = json.dumps(state.to_dict(), indent=2)

        # Write to a sibling temp file then swap, so a crash never leaves half a blob
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=".db-", suffix=".json", dir=str(self.path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, self.path)
            except OSError:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise PersistenceFailure(f"Failed to write {self.path}: {e}") from e


class MemoryStore(StateStore):
    """In-process store for tests and throwaway runs."""

    def __init__(self, initial: Optional[AppState] = None, *, fail_saves: bool = False):
        self._data: Dict[str, Any] = (initial or AppState()).to_dict()
        self.fail_saves = fail_saves
        self.save_count = 0

    def load(self) -> AppState:
        return AppState.from_dict(json.loads(json.dumps(self._data)))

    def save(self, state: AppState) -> None:
        if self.fail_saves:
            raise PersistenceFailure("memory store configured to fail")
        self._data = state.to_dict()
        self.save_count += 1

    @property
    def data(self) -> Dict[str, Any]:
        return self._data
