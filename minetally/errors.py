"""Error taxonomy for the tally system.

Only conditions that callers must act on are exceptions. Unknown workers,
unattributed shares and zero-share windows are ordinary states and are
reported through return values instead.
"""

from __future__ import annotations

from pathlib import Path


class MinetallyError(Exception):
    """Base class for all minetally errors."""


class TransientFetchError(MinetallyError):
    """A remote call failed or returned data we could not interpret.

    Recoverable: the poll loop logs it and retries on the next cycle.
    """

    def __init__(self, endpoint: str, reason: str):
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"{endpoint}: {reason}")


class ConfigError(MinetallyError):
    """Tally configuration could not be used."""

    def __init__(self, path: Path | str, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class ConfigMissing(ConfigError):
    """The configuration file does not exist."""

    def __init__(self, path: Path | str):
        super().__init__(path, "config file not found")


class ConfigMalformed(ConfigError):
    """The configuration file exists but is not a valid tally config."""


class StorageError(MinetallyError):
    """Persisted state could not be written or read back."""

    def __init__(self, path: Path | str, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


__all__ = [
    "ConfigError",
    "ConfigMalformed",
    "ConfigMissing",
    "MinetallyError",
    "StorageError",
    "TransientFetchError",
]
