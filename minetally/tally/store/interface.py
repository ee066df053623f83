"""StateStore protocol - where the poller's snapshot lives.

Implementations: FilesystemStateStore (JSON file in the data directory).
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from minetally.tally.models import PersistedState


@runtime_checkable
class StateStore(Protocol):
    """Load and save whole-state snapshots."""

    def load(self) -> PersistedState:
        """Return the last saved snapshot, or an empty one if none exists."""
        ...

    def save(self, state: PersistedState) -> None:
        """Replace the saved snapshot. Raises StorageError on failure."""
        ...


__all__ = ["StateStore"]
