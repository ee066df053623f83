"""PoolSource protocol - the remote data the poller and report consume.

Implementations: NanopoolClient. Every method raises TransientFetchError
on any failure, including malformed responses.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol, runtime_checkable

from minetally.tally.models import Payment, ShareSample, WorkerIdentity


@runtime_checkable
class PoolSource(Protocol):
    """Read-only view of a pool account."""

    async def fetch_workers(self, address: str) -> list[WorkerIdentity]:
        """Workers currently mining to the address."""
        ...

    async def fetch_share_history(self, address: str, worker_name: str) -> list[ShareSample]:
        """Recent share samples for one worker (a trailing window)."""
        ...

    async def fetch_balance(self, address: str) -> Decimal:
        """Unpaid balance held by the pool for the address."""
        ...

    async def fetch_payments(self, address: str) -> list[Payment]:
        """Payment history for the address."""
        ...

    async def close(self) -> None:
        ...


__all__ = ["PoolSource"]
