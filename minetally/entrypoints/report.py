"""Report entrypoint.

One-shot: load config and the poller's snapshot, fetch payment history,
attribute each payout to users and print the result. Never writes state.

Exit status: 0 on success, 1 on config/state errors, 2 when the report
was printed without payout data because payments could not be fetched.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from decimal import Decimal

import bittensor as bt
from dotenv import load_dotenv

from minetally.config.core import TallyConfig, add_args, load_config, settings_from_args
from minetally.errors import ConfigError, StorageError, TransientFetchError
from minetally.pool.interface import PoolSource
from minetally.shared.logging import configure_logging
from minetally.tally.attribution import TrancheAttribution, attribute_payouts
from minetally.tally.registry import WorkerRegistry
from minetally.tally.report import ReportPresenter
from minetally.tally.share_store import ShareStore
from minetally.tally.tranches import build_tranches


async def generate_report(
    pool: PoolSource,
    config: TallyConfig,
    shares: ShareStore,
    *,
    confirmed_only: bool = False,
    show_percent: bool = False,
) -> tuple[str, bool]:
    """Build the report text.

    Returns:
        (text, payments_available)
    """
    registry = WorkerRegistry(config.users)
    address = config.wallet_address

    balance: Decimal | None
    try:
        balance = await pool.fetch_balance(address)
    except TransientFetchError as e:
        bt.logging.warning({"report": {"balance": "unavailable", "error": str(e)}})
        balance = None

    attributions: list[TrancheAttribution] | None
    try:
        payments = await pool.fetch_payments(address)
    except TransientFetchError as e:
        bt.logging.warning({"report": {"payments": "unavailable", "error": str(e)}})
        attributions = None
    else:
        attributions = attribute_payouts(build_tranches(payments), shares, registry)
        fallbacks = sum(1 for a in attributions if a.is_fallback)
        bt.logging.debug({"report": {"tranches": len(attributions), "equal_split": fallbacks}})

    presenter = ReportPresenter(
        shares, registry, confirmed_only=confirmed_only, show_percent=show_percent,
    )
    text = presenter.render(address, attributions, balance=balance)
    return text, attributions is not None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Minetally payout report")
    bt.logging.add_args(parser)
    add_args(parser)
    parser.add_argument(
        "--confirmed-only", action="store_true", default=False,
        help="Hide payouts the pool has not confirmed yet.",
    )
    parser.add_argument(
        "--show-percent", action="store_true", default=False,
        help="Show each user's share of every payout window as a percentage.",
    )
    return parser


def main() -> None:
    if os.environ.get("MINETALLY_TEST_MODE") != "true":
        load_dotenv()

    args = build_parser().parse_args()
    configure_logging(args)

    try:
        settings = settings_from_args(args)
        config = load_config(settings.config_path)
    except (ValueError, ConfigError) as e:
        bt.logging.error({"report": {"config_error": str(e)}})
        sys.exit(1)

    from minetally.pool.nanopool import NanopoolClient
    from minetally.tally.store.filesystem import FilesystemStateStore

    shares = ShareStore()
    try:
        shares.restore(FilesystemStateStore(settings.data_dir).load())
    except StorageError as e:
        bt.logging.error({"report": {"state_unreadable": str(e)}})
        sys.exit(1)

    pool = NanopoolClient(
        api_base=settings.api_base,
        timeout=settings.timeout,
        max_retries=settings.max_retries,
    )

    async def _run() -> tuple[str, bool]:
        try:
            return await generate_report(
                pool, config, shares,
                confirmed_only=args.confirmed_only,
                show_percent=args.show_percent,
            )
        finally:
            await pool.close()

    text, payments_available = asyncio.run(_run())
    sys.stdout.write(text)
    if not payments_available:
        sys.exit(2)


if __name__ == "__main__":
    main()
