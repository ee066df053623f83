"""Per-worker share tally and payout attribution for a shared pool wallet."""

__version__ = "0.1.0"
