"""HTTP PoolSource client for the Nanopool v1 REST API.

Every endpoint answers with an envelope:

    {"status": true, "data": ...}
    {"status": false, "error": "..."}

Anything other than a well-formed ``status: true`` envelope is reported
as TransientFetchError so the poll loop can retry on its next cycle.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal, InvalidOperation
from typing import Any
from urllib.parse import quote

import bittensor as bt
import httpx
from pydantic import ValidationError

from minetally.errors import TransientFetchError
from minetally.tally.models import Payment, ShareSample, WorkerIdentity

DEFAULT_API_BASE = "https://api.nanopool.org/v1/eth"


def _to_decimal(value: Any) -> Decimal:
    """Parse a JSON number as Decimal via its text form, never via float math."""
    if isinstance(value, bool) or value is None:
        raise InvalidOperation(f"not a number: {value!r}")
    return Decimal(str(value))


class NanopoolClient:
    """Async client for a Nanopool account."""

    def __init__(
        self,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_base = api_base.rstrip("/")
        self._max_retries = max(1, max_retries)
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def close(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str) -> Any:
        """GET with retry on transport errors. Returns the envelope's ``data``."""
        url = f"{self.api_base}{path}"
        for attempt in range(self._max_retries):
            try:
                resp = await self._client.get(url)
                break
            except httpx.TransportError as e:
                if attempt == self._max_retries - 1:
                    raise TransientFetchError(path, f"transport error: {e}") from e
                wait = 2 ** attempt
                bt.logging.warning({"pool_http_client": {"retry": attempt, "wait": wait, "error": str(e)}})
                await asyncio.sleep(wait)

        if resp.status_code != 200:
            raise TransientFetchError(path, f"HTTP {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as e:
            raise TransientFetchError(path, "response is not JSON") from e

        if not isinstance(body, dict):
            raise TransientFetchError(path, "response is not an object")
        if body.get("status") is not True:
            raise TransientFetchError(path, str(body.get("error") or "status false"))
        if "data" not in body:
            raise TransientFetchError(path, "response has no data")
        return body["data"]

    @staticmethod
    def _expect_list(path: str, data: Any) -> list[Any]:
        # The pool answers with null instead of [] for empty histories.
        if data is None:
            return []
        if not isinstance(data, list):
            raise TransientFetchError(path, "data is not a list")
        return data

    # -- PoolSource interface --

    async def fetch_workers(self, address: str) -> list[WorkerIdentity]:
        path = f"/workers/{quote(address, safe='')}"
        rows = self._expect_list(path, await self._get(path))
        try:
            return [WorkerIdentity(uid=row["uid"], name=row["id"]) for row in rows]
        except (KeyError, TypeError, ValidationError) as e:
            raise TransientFetchError(path, f"malformed worker record: {e}") from e

    async def fetch_share_history(self, address: str, worker_name: str) -> list[ShareSample]:
        path = f"/shareratehistory/{quote(address, safe='')}/{quote(worker_name, safe='')}"
        rows = self._expect_list(path, await self._get(path))
        try:
            return [ShareSample(timestamp=row["date"], shares=row["shares"]) for row in rows]
        except (KeyError, TypeError, ValidationError) as e:
            raise TransientFetchError(path, f"malformed share record: {e}") from e

    async def fetch_balance(self, address: str) -> Decimal:
        path = f"/balance/{quote(address, safe='')}"
        data = await self._get(path)
        try:
            return _to_decimal(data)
        except (InvalidOperation, ValueError) as e:
            raise TransientFetchError(path, f"malformed balance: {data!r}") from e

    async def fetch_payments(self, address: str) -> list[Payment]:
        path = f"/payments/{quote(address, safe='')}"
        rows = self._expect_list(path, await self._get(path))
        try:
            return [
                Payment(
                    timestamp=row["date"],
                    amount=_to_decimal(row["amount"]),
                    confirmed=row.get("confirmed", True),
                    tx_hash=row.get("txHash"),
                )
                for row in rows
            ]
        except (KeyError, TypeError, AttributeError, InvalidOperation, ValidationError) as e:
            raise TransientFetchError(path, f"malformed payment record: {e}") from e


__all__ = ["DEFAULT_API_BASE", "NanopoolClient"]
