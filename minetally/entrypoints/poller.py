"""Poller entrypoint.

Long-running process that polls the pool for worker share history and
keeps the on-disk snapshot current. Report generation is a separate
one-shot command (minetally-report).
"""

import argparse
import asyncio
import os
import signal
import sys

import bittensor as bt
from dotenv import load_dotenv

from minetally.config.core import (
    RuntimeSettings,
    TallyConfig,
    add_args,
    load_config,
    settings_from_args,
    write_config,
)
from minetally.errors import ConfigMalformed, ConfigMissing, StorageError
from minetally.shared.logging import configure_logging


def prompt_default_config(settings: RuntimeSettings) -> TallyConfig | None:
    """Ask for a wallet address and write a starter tally.json.

    Only used on an interactive terminal. Returns None if the user gave
    nothing usable.
    """
    print("No config found at", settings.config_path)
    print("Enter Wallet Address: (0x000000000000000000000000000)")
    try:
        address = input().strip()
    except EOFError:
        return None
    if not address:
        return None
    config = TallyConfig(wallet_address=address, users=[])
    write_config(settings.config_path, config)
    bt.logging.info({"poller": {"config_written": str(settings.config_path)}})
    return config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Minetally share poller")
    bt.logging.add_args(parser)
    add_args(parser)
    return parser


def main() -> None:
    if os.environ.get("MINETALLY_TEST_MODE") != "true":
        load_dotenv()

    args = build_parser().parse_args()
    configure_logging(args)

    try:
        settings = settings_from_args(args)
    except ValueError as e:
        bt.logging.error({"poller": {"invalid_settings": str(e)}})
        sys.exit(1)

    try:
        config = load_config(settings.config_path)
    except ConfigMissing as e:
        config = prompt_default_config(settings) if sys.stdin.isatty() else None
        if config is None:
            bt.logging.error({"poller": {"config_missing": str(e.path)}})
            sys.exit(1)
    except ConfigMalformed as e:
        bt.logging.error({"poller": {"config_malformed": str(e)}})
        sys.exit(1)

    from minetally.pool.nanopool import NanopoolClient
    from minetally.runtime import PollRuntime
    from minetally.tally.share_store import ShareStore
    from minetally.tally.store.filesystem import FilesystemStateStore

    state_store = FilesystemStateStore(settings.data_dir)
    shares = ShareStore()
    try:
        shares.restore(state_store.load())
    except StorageError as e:
        bt.logging.error({"poller": {"state_unreadable": str(e)}})
        sys.exit(1)

    bt.logging.info({
        "poller_config": {
            "address": config.wallet_address,
            "users": [u.name for u in config.users],
            "poll_interval": settings.poll_interval,
            "api_base": settings.api_base,
            "data_dir": str(settings.data_dir),
        }
    })

    pool = NanopoolClient(
        api_base=settings.api_base,
        timeout=settings.timeout,
        max_retries=settings.max_retries,
    )
    runtime = PollRuntime(
        pool=pool,
        shares=shares,
        state_store=state_store,
        address=config.wallet_address,
        poll_interval=settings.poll_interval,
    )

    # Graceful shutdown
    loop = asyncio.new_event_loop()

    def _signal_handler(sig, frame):
        bt.logging.info({"poller": "shutdown_signal_received"})
        loop.call_soon_threadsafe(runtime.stop)

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        loop.run_until_complete(runtime.run())
    except KeyboardInterrupt:
        bt.logging.info({"poller": "keyboard_interrupt"})
    finally:
        loop.run_until_complete(pool.close())
        loop.close()
        bt.logging.info({"poller": "stopped"})

    if runtime.stopped_on_errors:
        sys.exit(1)


if __name__ == "__main__":
    main()
