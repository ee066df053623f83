"""Poller runtime.

Single cooperative loop: discover workers -> merge share history -> save
snapshot -> sleep. A cycle always runs to completion before the next one
starts; a slow pool API just pushes the next cycle back.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal

import bittensor as bt

from minetally.errors import TransientFetchError
from minetally.pool.interface import PoolSource
from minetally.tally.share_store import ShareStore
from minetally.tally.store.interface import StateStore


@dataclass
class CycleResult:
    """What one poll cycle observed."""

    workers_reported: int = 0
    new_workers: list[int] = field(default_factory=list)  # uids
    samples_changed: int = 0
    workers_polled: int = 0
    failed_fetches: list[str] = field(default_factory=list)
    saved: bool = False

    @property
    def any_success(self) -> bool:
        return self.workers_polled > 0 or self.workers_reported > 0


class PollRuntime:
    """Main poller loop."""

    MAX_CONSECUTIVE_ERRORS = 10

    def __init__(
        self,
        pool: PoolSource,
        shares: ShareStore,
        state_store: StateStore,
        address: str,
        poll_interval: int = 600,
    ):
        self.pool = pool
        self.shares = shares
        self.state_store = state_store
        self.address = address
        self._poll_interval = poll_interval
        self._running = False
        self._stop_event = asyncio.Event()
        self.stopped_on_errors = False

    async def log_balance(self) -> Decimal | None:
        """Log the wallet's pool balance. Failure is not fatal."""
        try:
            balance = await self.pool.fetch_balance(self.address)
        except TransientFetchError as e:
            bt.logging.warning({"poll_runtime": {"balance": "unavailable", "error": str(e)}})
            return None
        bt.logging.info({"poll_runtime": {"wallet_balance": str(balance)}})
        return balance

    async def run(self) -> None:
        """Poll until stopped or until too many consecutive cycles fail."""
        self._running = True
        bt.logging.info({
            "poll_runtime": {
                "status": "starting",
                "address": self.address,
                "poll_interval": self._poll_interval,
                "known_workers": len(self.shares.workers),
            }
        })
        await self.log_balance()

        consecutive_errors = 0

        while self._running:
            try:
                await self.cycle()
                consecutive_errors = 0
            except asyncio.CancelledError:
                break
            except Exception as e:
                consecutive_errors += 1
                bt.logging.error({"poll_cycle_error": str(e), "consecutive": consecutive_errors})
                if consecutive_errors >= self.MAX_CONSECUTIVE_ERRORS:
                    bt.logging.error({"poll_runtime": "too_many_errors, stopping"})
                    self.stopped_on_errors = True
                    break
                await self._sleep(min(30, 5 * consecutive_errors))
                continue

            await self._sleep(self._poll_interval)

        self._running = False
        bt.logging.info({"poll_runtime": "stopped"})

    def stop(self) -> None:
        """Signal the runtime to stop. The current cycle is allowed to finish."""
        self._running = False
        self._stop_event.set()

    async def _sleep(self, seconds: float) -> None:
        """Sleep that wakes early on stop()."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def cycle(self) -> CycleResult:
        """Execute one poll cycle.

        Fetch failures are logged and skipped. A StorageError on save
        propagates: the cycle failed and must not be reported as saved.
        """
        result = CycleResult()

        # Discover workers
        try:
            reported = await self.pool.fetch_workers(self.address)
        except TransientFetchError as e:
            bt.logging.warning({"poll_cycle": {"fetch_workers_failed": str(e)}})
            result.failed_fetches.append("workers")
        else:
            result.workers_reported = len(reported)
            bt.logging.info({"poll_cycle": {"workers_reported": len(reported)}})
            for worker in reported:
                if self.shares.register(worker):
                    result.new_workers.append(worker.uid)
                    bt.logging.info({"poll_cycle": {"new_worker": {"uid": worker.uid, "name": worker.name}}})

        # Merge share history for every worker ever seen
        for worker in self.shares.workers:
            if not worker.name:
                continue
            try:
                samples = await self.pool.fetch_share_history(self.address, worker.name)
            except TransientFetchError as e:
                bt.logging.warning({"poll_cycle": {"fetch_shares_failed": worker.name, "error": str(e)}})
                result.failed_fetches.append(worker.name)
                continue
            result.samples_changed += self.shares.merge(worker.uid, samples)
            result.workers_polled += 1

        if result.any_success:
            self.state_store.save(self.shares.snapshot())
            result.saved = True
            bt.logging.info({
                "poll_cycle": {
                    "saved": str(getattr(self.state_store, "path", "")),
                    "samples_changed": result.samples_changed,
                    "failed_fetches": len(result.failed_fetches),
                }
            })
        else:
            bt.logging.warning({"poll_cycle": "nothing fetched, snapshot left unchanged"})

        return result


__all__ = ["CycleResult", "PollRuntime"]
