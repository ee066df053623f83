"""Plain-text rendering of tally results.

Pure formatting: no I/O and no attribution logic. Every mapping is walked
in an explicit sort order so output is identical across runs.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable

from .attribution import AttributionMethod, TrancheAttribution, user_share_totals
from .registry import WorkerRegistry
from .share_store import ShareStore

_RULE = "=" * 60
_SUBRULE = "-" * 60


def format_timestamp(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def format_amount(amount: Decimal) -> str:
    """Fixed-point rendering without exponent or trailing zeros.

    Works on the string form so no digit of the stored value is rounded.
    """
    text = format(amount, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text if text not in ("-0", "") else "0"


class ReportPresenter:
    """Renders the known-users, unknown-workers and payout sections."""

    def __init__(
        self,
        store: ShareStore,
        registry: WorkerRegistry,
        *,
        confirmed_only: bool = False,
        show_percent: bool = False,
    ):
        self.store = store
        self.registry = registry
        self.confirmed_only = confirmed_only
        self.show_percent = show_percent

    def header(
        self,
        address: str,
        *,
        balance: Decimal | None = None,
        generated_at: datetime | None = None,
    ) -> list[str]:
        generated_at = generated_at or datetime.now(timezone.utc)
        return [
            _RULE,
            "Minetally Report",
            _RULE,
            f"Address:   {address}",
            f"Generated: {generated_at.isoformat()}",
            f"Workers:   {len(self.store.workers)}",
            f"Balance:   {format_amount(balance) if balance is not None else 'unavailable'}",
        ]

    def known_users(self) -> list[str]:
        lines = ["", "Known Users", _SUBRULE]
        totals = user_share_totals(self.store, self.registry)
        if not totals:
            lines.append("NONE")
            return lines
        for user_name in sorted(totals):
            per_worker = totals[user_name]
            lines.append(f"{user_name}")
            for worker_name in sorted(per_worker):
                lines.append(f"    {worker_name}: {per_worker[worker_name]}")
            lines.append(f"    total: {sum(per_worker.values())}")
        return lines

    def unknown_workers(self) -> list[str]:
        lines = ["", "Unknown Workers", _SUBRULE]
        unknown = self.registry.unknown_workers(self.store.workers)
        if not unknown:
            lines.append("NONE")
            return lines
        for worker in unknown:
            label = worker.name or "<unnamed>"
            lines.append(f"{label} (uid {worker.uid})")
        return lines

    def payouts(self, attributions: Iterable[TrancheAttribution]) -> list[str]:
        lines = ["", "Payouts", _SUBRULE]
        shown = [
            a for a in attributions
            if a.tranche.confirmed or not self.confirmed_only
        ]
        if not shown:
            lines.append("NONE")
            return lines
        for attribution in shown:
            lines.extend(self._tranche_block(attribution))
        return lines

    def _tranche_block(self, attribution: TrancheAttribution) -> list[str]:
        tranche = attribution.tranche
        marker = "" if tranche.confirmed else " (unconfirmed)"
        lines = [
            f"{format_timestamp(tranche.end_inclusive)}  amount {format_amount(tranche.amount)}{marker}",
        ]

        if attribution.method is AttributionMethod.UNATTRIBUTED:
            lines.append("    no configured users; amount unattributed")
            return lines

        if attribution.method is AttributionMethod.EQUAL_SPLIT:
            lines.append("    equal split (no shares recorded in window)")
            for name in sorted(attribution.payouts):
                lines.append(f"    {name}: payout {format_amount(attribution.payouts[name])}")
            return lines

        for name in sorted(attribution.user_shares):
            entry = f"    {name}: shares {attribution.user_shares[name]}"
            if self.show_percent:
                entry += f" ({attribution.share_fraction(name) * 100.0:.2f}%)"
            entry += f" payout {format_amount(attribution.payouts.get(name, Decimal(0)))}"
            lines.append(entry)
        if attribution.unattributed_shares:
            lines.append(
                f"    unattributed: shares {attribution.unattributed_shares}"
                f" payout {format_amount(attribution.unattributed_amount)}"
            )
        return lines

    def render(
        self,
        address: str,
        attributions: list[TrancheAttribution] | None,
        *,
        balance: Decimal | None = None,
        generated_at: datetime | None = None,
    ) -> str:
        """Full report. ``attributions=None`` means payments were unavailable."""
        lines = self.header(address, balance=balance, generated_at=generated_at)
        lines.extend(self.known_users())
        lines.extend(self.unknown_workers())
        if attributions is None:
            lines.extend(["", "Payouts", _SUBRULE, "payment history unavailable"])
        else:
            lines.extend(self.payouts(attributions))
        return "\n".join(lines) + "\n"


__all__ = ["ReportPresenter", "format_amount", "format_timestamp"]
