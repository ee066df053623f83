"""Filesystem-based StateStore implementation.

Writes the snapshot as a single JSON document:
  {data_dir}/data.json

Layout: {"workers": [{"uid", "id"}, ...], "shares": {"<uid>": {"<ts>": n}}}.
Each save replaces the whole file via tmp + rename, so a crash mid-write
leaves the previous snapshot intact.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

import bittensor as bt
from pydantic import ValidationError

from minetally.errors import StorageError
from minetally.tally.models import PersistedState

DATA_FILE_NAME = "data.json"


class FilesystemStateStore:
    """Local filesystem StateStore implementation."""

    def __init__(self, data_dir: str | Path, file_name: str = DATA_FILE_NAME):
        self.path = Path(data_dir) / file_name

    def load(self) -> PersistedState:
        """Read the snapshot. Missing file -> empty state; corrupt file -> StorageError."""
        if not self.path.exists():
            bt.logging.info({"state_store": {"status": "no_data_file", "path": str(self.path)}})
            return PersistedState()

        try:
            with open(self.path) as f:
                data = json.load(f)
            state = PersistedState.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise StorageError(self.path, f"unreadable snapshot: {e}") from e

        bt.logging.info({
            "state_store": {
                "status": "loaded",
                "path": str(self.path),
                "workers": len(state.workers),
            }
        })
        return state

    def save(self, state: PersistedState) -> None:
        """Atomically write state to disk (tmp + rename)."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            data = state.to_json_dict()
            tmp_fd, tmp_path = tempfile.mkstemp(
                dir=str(self.path.parent), suffix=".tmp",
            )
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(self.path, f"cannot prepare snapshot: {e}") from e

        try:
            with os.fdopen(tmp_fd, "w") as f:
                json.dump(data, f, sort_keys=True)
            os.replace(tmp_path, str(self.path))
        except (OSError, TypeError, ValueError) as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise StorageError(self.path, f"write failed: {e}") from e


__all__ = ["DATA_FILE_NAME", "FilesystemStateStore"]
