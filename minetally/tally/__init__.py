"""Share collection and payout attribution core.

The tally package keeps the per-worker share history gathered by the
poller and turns it, together with the pool's payment history, into a
per-user payout breakdown:

- ShareStore: idempotent time-series merge + snapshot/restore
- WorkerRegistry: worker name -> owning user
- build_tranches: one share window per payment
- attribute_payouts: proportional split per window
- ReportPresenter: plain-text summaries
"""

from .attribution import (
    PAYOUT_QUANTUM,
    AttributionMethod,
    TrancheAttribution,
    attribute_payouts,
    attribute_tranche,
    user_share_totals,
)
from .models import (
    Payment,
    PersistedState,
    ShareSample,
    Tranche,
    User,
    WorkerIdentity,
)
from .registry import WorkerRegistry
from .report import ReportPresenter
from .share_store import ShareStore
from .tranches import build_tranches

__all__ = [
    "PAYOUT_QUANTUM",
    "AttributionMethod",
    "Payment",
    "PersistedState",
    "ReportPresenter",
    "ShareSample",
    "ShareStore",
    "Tranche",
    "TrancheAttribution",
    "User",
    "WorkerIdentity",
    "WorkerRegistry",
    "attribute_payouts",
    "attribute_tranche",
    "build_tranches",
    "user_share_totals",
]
