"""Remote pool data sources."""

from .interface import PoolSource
from .nanopool import DEFAULT_API_BASE, NanopoolClient

__all__ = ["DEFAULT_API_BASE", "NanopoolClient", "PoolSource"]
