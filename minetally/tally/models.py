"""Pydantic models for worker share tracking and payout attribution.

Two families:
- Observed data: WorkerIdentity, ShareSample, Payment (what the pool reports)
- Derived/persisted data: Tranche, PersistedState
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# 9999-12-31T23:59:59Z, the last second datetime can render
MAX_TIMESTAMP = 253402300799


# ---------------------------------------------------------------------------
# Observed entities
# ---------------------------------------------------------------------------


class WorkerIdentity(BaseModel):
    """A mining worker as reported by the pool.

    ``uid`` is the stable key. ``name`` is the human label the rig was
    started with; it is what users claim ownership by. Serialized as ``id``
    to match the pool's vocabulary.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    uid: int
    name: str = Field(alias="id")


class User(BaseModel):
    """A person who contributes workers, declared in the tally config."""

    name: str = Field(min_length=1)
    workers: list[str] = Field(default_factory=list)

    def owns(self, worker_name: str) -> bool:
        return worker_name in self.workers


class ShareSample(BaseModel):
    """Share count reported for one worker at one timestamp."""

    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(ge=0, le=MAX_TIMESTAMP)
    shares: int = Field(ge=0)


class Payment(BaseModel):
    """A payout from the pool to the shared wallet."""

    timestamp: int = Field(ge=0, le=MAX_TIMESTAMP)
    amount: Decimal
    confirmed: bool = True
    tx_hash: str | None = None


# ---------------------------------------------------------------------------
# Derived entities
# ---------------------------------------------------------------------------


class Tranche(BaseModel):
    """Window of share activity paid for by a single payment.

    Covers ``start_exclusive < t <= end_inclusive``. ``confirmed`` and
    ``tx_hash`` are carried over from the payment for presentation only.
    """

    model_config = ConfigDict(frozen=True)

    start_exclusive: int
    end_inclusive: int
    amount: Decimal
    confirmed: bool = True
    tx_hash: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.end_inclusive <= self.start_exclusive


class PersistedState(BaseModel):
    """Durable snapshot of everything the poller has observed.

    ``shares`` maps worker uid -> timestamp -> share count. JSON object keys
    are strings on disk; pydantic coerces them back to ints on load.
    """

    model_config = ConfigDict(populate_by_name=True)

    workers: list[WorkerIdentity] = Field(default_factory=list)
    shares: dict[int, dict[int, int]] = Field(default_factory=dict)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


__all__ = [
    "MAX_TIMESTAMP",
    "Payment",
    "PersistedState",
    "ShareSample",
    "Tranche",
    "User",
    "WorkerIdentity",
]
