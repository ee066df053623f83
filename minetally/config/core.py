"""Tally configuration and runtime settings.

Two sources:
- ``tally.json`` in the data directory: wallet address + user ownership.
  This is what the user edits; errors here are fatal at startup.
- Runtime settings (data dir, poll interval, API endpoint, timeouts):
  CLI flags with environment overrides, env taking precedence.
"""

from __future__ import annotations

import argparse
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from minetally.errors import ConfigMalformed, ConfigMissing
from minetally.pool.nanopool import DEFAULT_API_BASE
from minetally.tally.models import User

CONFIG_FILE_NAME = "tally.json"
DEFAULT_DATA_DIR = "~/.minetally"
DEFAULT_POLL_INTERVAL = 600


class TallyConfig(BaseModel):
    """Contents of tally.json."""

    wallet_address: str = Field(min_length=1)
    users: list[User] = Field(default_factory=list)

    @field_validator("wallet_address")
    @classmethod
    def _strip_address(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("wallet_address is empty")
        return v

    @field_validator("users")
    @classmethod
    def _unique_user_names(cls, v: list[User]) -> list[User]:
        names = [u.name for u in v]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"duplicate user names: {', '.join(dupes)}")
        return v


def load_config(path: str | Path) -> TallyConfig:
    """Parse tally.json.

    Raises:
        ConfigMissing: the file does not exist.
        ConfigMalformed: the file is unreadable, not JSON, or the wrong shape.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigMissing(path)
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigMalformed(path, f"cannot parse: {e}") from e

    try:
        return TallyConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigMalformed(path, f"invalid config: {e.error_count()} error(s): {e}") from e


def write_config(path: str | Path, config: TallyConfig) -> None:
    """Write tally.json, creating the parent directory if needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(config.model_dump(mode="json"), f, indent=2)
        f.write("\n")


# ---------------------------------------------------------------------------
# Runtime settings
# ---------------------------------------------------------------------------


@dataclass
class RuntimeSettings:
    """Process-level knobs shared by the poller and report entrypoints."""

    data_dir: Path
    poll_interval: int = DEFAULT_POLL_INTERVAL
    api_base: str = DEFAULT_API_BASE
    timeout: float = 30.0
    max_retries: int = 3

    @property
    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILE_NAME


def add_args(parser: argparse.ArgumentParser) -> None:
    """Register runtime flags on a parser."""
    parser.add_argument("--tally.data_dir", type=str, default=DEFAULT_DATA_DIR)
    parser.add_argument("--poll.interval", type=int, default=DEFAULT_POLL_INTERVAL)
    parser.add_argument("--pool.api_base", type=str, default=DEFAULT_API_BASE)
    parser.add_argument("--pool.timeout", type=float, default=30.0)
    parser.add_argument("--pool.max_retries", type=int, default=3)


def settings_from_args(
    args: argparse.Namespace,
    environ: dict[str, str] | None = None,
) -> RuntimeSettings:
    """Build settings from parsed args, env vars taking precedence.

    Raises:
        ValueError: a value is out of range or not a number.
    """
    env: Any = os.environ if environ is None else environ

    data_dir = env.get("MINETALLY_HOME", getattr(args, "tally.data_dir", DEFAULT_DATA_DIR))
    poll_interval = int(env.get(
        "MINETALLY_POLL__INTERVAL_SECONDS",
        getattr(args, "poll.interval", DEFAULT_POLL_INTERVAL),
    ))
    api_base = env.get("MINETALLY_POOL__API_BASE", getattr(args, "pool.api_base", DEFAULT_API_BASE))
    timeout = float(env.get("MINETALLY_POOL__TIMEOUT", getattr(args, "pool.timeout", 30.0)))
    max_retries = int(env.get("MINETALLY_POOL__MAX_RETRIES", getattr(args, "pool.max_retries", 3)))

    if poll_interval <= 0:
        raise ValueError(f"poll interval must be positive, got {poll_interval}")
    if max_retries < 1:
        raise ValueError(f"max_retries must be at least 1, got {max_retries}")

    return RuntimeSettings(
        data_dir=Path(data_dir).expanduser(),
        poll_interval=poll_interval,
        api_base=api_base,
        timeout=timeout,
        max_retries=max_retries,
    )


__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_DATA_DIR",
    "DEFAULT_POLL_INTERVAL",
    "RuntimeSettings",
    "TallyConfig",
    "add_args",
    "load_config",
    "settings_from_args",
    "write_config",
]
