"""Logging setup shared by the entrypoints."""

from __future__ import annotations

import argparse

import bittensor as bt


def configure_logging(args: argparse.Namespace) -> None:
    """Apply ``--logging.debug`` / ``--logging.trace`` registered by bt.logging.add_args."""
    if getattr(args, "logging.trace", False):
        bt.logging.set_trace(True)
    elif getattr(args, "logging.debug", False):
        bt.logging.set_debug(True)


__all__ = ["configure_logging"]
