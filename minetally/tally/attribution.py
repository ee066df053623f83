"""Proportional payout attribution per payment tranche.

For every tranche, each registered worker's shares inside the window are
summed and credited to the worker's owner. Workers with no owner still
count toward the tranche total; their portion is reported as unattributed
instead of being redistributed.

Payout for user u in tranche T:

    payout(u, T) = T.amount * shares(u, T) / total_shares(T)

When nobody recorded shares in the window (cold start, polling gap) the
amount is split equally between configured users and the result is marked
EQUAL_SPLIT so it is never mistaken for a measured split. With no users
configured at all the whole amount is unattributed.

Amounts are Decimal throughout. Each payout is rounded down to
PAYOUT_QUANTUM; what rounding leaves behind is kept as ``dust`` so that
payouts + unattributed_amount + dust == amount exactly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal, localcontext
from enum import Enum
from typing import Iterable

from .models import Tranche
from .registry import WorkerRegistry
from .share_store import ShareStore


# Smallest ETH unit (1 wei)
PAYOUT_QUANTUM = Decimal("1e-18")

_CALC_PRECISION = 60


class AttributionMethod(str, Enum):
    """How a tranche's amount was divided."""

    PROPORTIONAL = "proportional"
    EQUAL_SPLIT = "equal_split"
    UNATTRIBUTED = "unattributed"


@dataclass
class TrancheAttribution:
    """Attribution of one tranche, with the share counts it was derived from."""

    tranche: Tranche
    method: AttributionMethod
    total_shares: int = 0
    unattributed_shares: int = 0
    user_shares: dict[str, int] = field(default_factory=dict)  # user name -> shares
    payouts: dict[str, Decimal] = field(default_factory=dict)  # user name -> amount
    unattributed_amount: Decimal = Decimal(0)
    dust: Decimal = Decimal(0)

    @property
    def is_fallback(self) -> bool:
        return self.method is AttributionMethod.EQUAL_SPLIT

    @property
    def attributed_shares(self) -> int:
        return sum(self.user_shares.values())

    def share_fraction(self, user_name: str) -> float:
        """Display-only fraction of the tranche's shares held by a user."""
        if self.total_shares == 0:
            return 0.0
        return float(self.user_shares.get(user_name, 0)) / float(self.total_shares)


def _round_down(value: Decimal) -> Decimal:
    return value.quantize(PAYOUT_QUANTUM, rounding=ROUND_DOWN)


def attribute_tranche(
    tranche: Tranche,
    store: ShareStore,
    registry: WorkerRegistry,
) -> TrancheAttribution:
    """Attribute a single tranche's amount to users.

    Every configured user appears in ``user_shares`` (possibly with 0) so
    consumers can rely on a complete roster.
    """
    user_shares = {user.name: 0 for user in registry.users}
    unattributed = 0

    for worker in store.workers:
        shares = store.total_shares(worker.uid, tranche.start_exclusive, tranche.end_inclusive)
        if shares == 0:
            continue
        owner = registry.resolve_owner(worker.name)
        if owner is None:
            unattributed += shares
        else:
            user_shares[owner.name] += shares

    total = sum(user_shares.values()) + unattributed
    amount = tranche.amount

    with localcontext() as ctx:
        ctx.prec = _CALC_PRECISION

        if total > 0:
            method = AttributionMethod.PROPORTIONAL
            payouts = {
                name: _round_down(amount * shares / total)
                for name, shares in user_shares.items()
            }
            unattributed_amount = _round_down(amount * unattributed / total)
        elif registry.user_count > 0:
            method = AttributionMethod.EQUAL_SPLIT
            each = _round_down(amount / registry.user_count)
            payouts = {name: each for name in user_shares}
            unattributed_amount = Decimal(0)
        else:
            method = AttributionMethod.UNATTRIBUTED
            payouts = {}
            unattributed_amount = amount

        dust = amount - sum(payouts.values(), Decimal(0)) - unattributed_amount

    return TrancheAttribution(
        tranche=tranche,
        method=method,
        total_shares=total,
        unattributed_shares=unattributed,
        user_shares=user_shares,
        payouts=payouts,
        unattributed_amount=unattributed_amount,
        dust=dust,
    )


def attribute_payouts(
    tranches: Iterable[Tranche],
    store: ShareStore,
    registry: WorkerRegistry,
) -> list[TrancheAttribution]:
    """Attribute every tranche, preserving tranche order."""
    return [attribute_tranche(t, store, registry) for t in tranches]


def user_share_totals(store: ShareStore, registry: WorkerRegistry) -> dict[str, dict[str, int]]:
    """All-time shares per user, broken down by declared worker name.

    A name may map to several uids (a rig re-registered under the same
    label); their totals are summed. Declared workers never observed show 0.
    """
    uids_by_name: dict[str, list[int]] = {}
    for worker in store.workers:
        uids_by_name.setdefault(worker.name, []).append(worker.uid)

    totals: dict[str, dict[str, int]] = {}
    for user in registry.users:
        per_worker = totals.setdefault(user.name, {})
        for name in user.workers:
            # An earlier user's claim wins; do not double count.
            if registry.resolve_owner(name) is not user:
                continue
            per_worker[name] = sum(store.total_shares(uid) for uid in uids_by_name.get(name, []))
    return totals


__all__ = [
    "PAYOUT_QUANTUM",
    "AttributionMethod",
    "TrancheAttribution",
    "attribute_payouts",
    "attribute_tranche",
    "user_share_totals",
]
