"""Partition the payment timeline into per-payment share windows."""

from __future__ import annotations

from typing import Iterable

from .models import Payment, Tranche


def build_tranches(payments: Iterable[Payment]) -> list[Tranche]:
    """One tranche per payment, covering the time since the previous one.

    Payments are sorted by timestamp first; the pool's ordering is not
    trusted. The first tranche starts at 0, so the result partitions
    ``(0, last_payment]`` with no gaps or overlaps. Two payments with the
    same timestamp produce a zero-width tranche for the second, which
    simply collects no shares. Unconfirmed payments are included.
    """
    tranches: list[Tranche] = []
    last_time = 0
    for payment in sorted(payments, key=lambda p: p.timestamp):
        tranches.append(Tranche(
            start_exclusive=last_time,
            end_inclusive=payment.timestamp,
            amount=payment.amount,
            confirmed=payment.confirmed,
            tx_hash=payment.tx_hash,
        ))
        last_time = payment.timestamp
    return tranches


__all__ = ["build_tranches"]
