"""In-memory time series of per-worker share samples.

The pool only ever reports a trailing window of samples, so successive
polls overlap. Samples are keyed by timestamp within each worker's series
and merged as upserts: re-merging the same response is a no-op and a
later value for a timestamp replaces the earlier one instead of adding to
it.

State is owned by whoever constructs the store (the poll runtime or the
report entrypoint). There is no module-level state.
"""

from __future__ import annotations

import math
from typing import Iterable

import bittensor as bt

from .models import PersistedState, ShareSample, WorkerIdentity


class ShareStore:
    """Registered workers plus their uid -> timestamp -> shares series."""

    def __init__(self) -> None:
        self._workers: dict[int, WorkerIdentity] = {}
        self._shares: dict[int, dict[int, int]] = {}

    # -- Workers --

    def register(self, worker: WorkerIdentity) -> bool:
        """Add a worker if its uid is new.

        Returns True when the worker was not seen before. Workers are never
        removed once registered, and the first observed name is kept.
        """
        if worker.uid in self._workers:
            return False
        self._workers[worker.uid] = worker
        self._shares.setdefault(worker.uid, {})
        return True

    @property
    def workers(self) -> list[WorkerIdentity]:
        """Registered workers in registration order."""
        return list(self._workers.values())

    def get_worker(self, uid: int) -> WorkerIdentity | None:
        return self._workers.get(uid)

    # -- Shares --

    def merge(self, worker_uid: int, samples: Iterable[ShareSample]) -> int:
        """Upsert samples into a worker's series.

        Unknown uids get an empty series created on the fly. Returns the
        number of timestamps that were new or changed value.
        """
        series = self._shares.setdefault(worker_uid, {})
        changed = 0
        for sample in samples:
            if sample.shares < 0:
                raise ValueError(f"negative share count at {sample.timestamp}: {sample.shares}")
            if series.get(sample.timestamp) != sample.shares:
                changed += 1
            series[sample.timestamp] = sample.shares
        bt.logging.debug({"share_store": {"merge": worker_uid, "changed": changed, "size": len(series)}})
        return changed

    def series(self, worker_uid: int) -> list[ShareSample]:
        """Samples for a worker, sorted by timestamp."""
        data = self._shares.get(worker_uid, {})
        return [ShareSample(timestamp=ts, shares=data[ts]) for ts in sorted(data)]

    def total_shares(
        self,
        worker_uid: int,
        window_start_exclusive: float = 0,
        window_end_inclusive: float = math.inf,
    ) -> int:
        """Sum of samples with ``start < t <= end``. Zero if there are none."""
        data = self._shares.get(worker_uid)
        if not data:
            return 0
        return sum(
            count for ts, count in data.items()
            if window_start_exclusive < ts <= window_end_inclusive
        )

    # -- Durability --

    def snapshot(self) -> PersistedState:
        """Deep copy of current state suitable for persisting."""
        return PersistedState(
            workers=list(self._workers.values()),
            shares={uid: dict(series) for uid, series in self._shares.items() if series},
        )

    def restore(self, state: PersistedState) -> None:
        """Replace all in-memory state with a snapshot.

        Share series whose uid has no worker entry keep their data; the uid
        is registered with an empty name so it is never silently dropped.
        """
        self._workers = {}
        self._shares = {}
        for worker in state.workers:
            self.register(worker)
        for uid, series in state.shares.items():
            if uid not in self._workers:
                bt.logging.warning({"share_store": {"orphan_series": uid, "samples": len(series)}})
                self.register(WorkerIdentity(uid=uid, name=""))
            self._shares[uid] = dict(series)


__all__ = ["ShareStore"]
