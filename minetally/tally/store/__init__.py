"""Persistence backends for the share snapshot."""

from .filesystem import DATA_FILE_NAME, FilesystemStateStore
from .interface import StateStore

__all__ = ["DATA_FILE_NAME", "FilesystemStateStore", "StateStore"]
