"""Tests for the poll runtime cycle and loop."""

import asyncio
import tempfile
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from minetally.errors import StorageError, TransientFetchError
from minetally.runtime import PollRuntime
from minetally.tally.models import ShareSample, WorkerIdentity
from minetally.tally.share_store import ShareStore
from minetally.tally.store.filesystem import FilesystemStateStore

ADDRESS = "0xabc"


def _samples(*pairs):
    return [ShareSample(timestamp=ts, shares=n) for ts, n in pairs]


@pytest.fixture
def tmp_dir():
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def mock_pool():
    pool = AsyncMock()
    pool.fetch_workers = AsyncMock(return_value=[
        WorkerIdentity(uid=1, name="rig-a"),
        WorkerIdentity(uid=2, name="rig-b"),
    ])
    histories = {
        "rig-a": _samples((100, 5), (200, 6)),
        "rig-b": _samples((100, 1)),
    }
    pool.fetch_share_history = AsyncMock(side_effect=lambda address, name: histories[name])
    pool.fetch_balance = AsyncMock(return_value=Decimal("0.5"))
    return pool


def _runtime(pool, tmp_dir, shares=None, **kw) -> PollRuntime:
    return PollRuntime(
        pool=pool,
        shares=shares or ShareStore(),
        state_store=FilesystemStateStore(tmp_dir),
        address=ADDRESS,
        **kw,
    )


class TestCycle:

    @pytest.mark.asyncio
    async def test_discovers_merges_and_saves(self, mock_pool, tmp_dir):
        runtime = _runtime(mock_pool, tmp_dir)
        result = await runtime.cycle()

        assert result.workers_reported == 2
        assert result.new_workers == [1, 2]
        assert result.workers_polled == 2
        assert result.samples_changed == 3
        assert result.saved

        restored = ShareStore()
        restored.restore(FilesystemStateStore(tmp_dir).load())
        assert restored.total_shares(1) == 11
        assert restored.total_shares(2) == 1

    @pytest.mark.asyncio
    async def test_repeated_cycle_is_idempotent(self, mock_pool, tmp_dir):
        runtime = _runtime(mock_pool, tmp_dir)
        await runtime.cycle()
        second = await runtime.cycle()

        assert second.new_workers == []
        assert second.samples_changed == 0
        assert runtime.shares.total_shares(1) == 11

    @pytest.mark.asyncio
    async def test_workers_fetch_failure_still_polls_known_workers(self, mock_pool, tmp_dir):
        shares = ShareStore()
        shares.register(WorkerIdentity(uid=1, name="rig-a"))
        mock_pool.fetch_workers = AsyncMock(side_effect=TransientFetchError("/workers", "HTTP 502"))

        result = await _runtime(mock_pool, tmp_dir, shares=shares).cycle()
        assert result.failed_fetches == ["workers"]
        assert result.workers_polled == 1
        assert result.saved
        assert shares.total_shares(1) == 11

    @pytest.mark.asyncio
    async def test_share_fetch_failure_skips_that_worker(self, mock_pool, tmp_dir):
        def history(address, name):
            if name == "rig-b":
                raise TransientFetchError("/shareratehistory", "status false")
            return _samples((100, 5))

        mock_pool.fetch_share_history = AsyncMock(side_effect=history)
        runtime = _runtime(mock_pool, tmp_dir)
        result = await runtime.cycle()

        assert result.failed_fetches == ["rig-b"]
        assert runtime.shares.total_shares(1) == 5
        assert runtime.shares.total_shares(2) == 0
        # Discovered worker is kept even though its shares were not fetched
        assert [w.uid for w in runtime.shares.workers] == [1, 2]

    @pytest.mark.asyncio
    async def test_nothing_fetched_does_not_save(self, mock_pool, tmp_dir):
        mock_pool.fetch_workers = AsyncMock(side_effect=TransientFetchError("/workers", "down"))
        state_store = MagicMock()
        runtime = PollRuntime(
            pool=mock_pool, shares=ShareStore(), state_store=state_store, address=ADDRESS,
        )
        result = await runtime.cycle()
        assert not result.saved
        state_store.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_storage_error_propagates(self, mock_pool):
        state_store = MagicMock()
        state_store.save.side_effect = StorageError("/tmp/data.json", "disk full")
        runtime = PollRuntime(
            pool=mock_pool, shares=ShareStore(), state_store=state_store, address=ADDRESS,
        )
        with pytest.raises(StorageError):
            await runtime.cycle()

    @pytest.mark.asyncio
    async def test_orphan_workers_not_fetched(self, mock_pool, tmp_dir):
        shares = ShareStore()
        shares.register(WorkerIdentity(uid=9, name=""))
        mock_pool.fetch_workers = AsyncMock(return_value=[])
        await _runtime(mock_pool, tmp_dir, shares=shares).cycle()
        mock_pool.fetch_share_history.assert_not_awaited()


class TestRunLoop:

    @pytest.mark.asyncio
    async def test_stop_wakes_sleep(self, mock_pool, tmp_dir):
        runtime = _runtime(mock_pool, tmp_dir, poll_interval=3600)
        task = asyncio.create_task(runtime.run())
        await asyncio.sleep(0.05)
        runtime.stop()
        await asyncio.wait_for(task, timeout=2)
        assert mock_pool.fetch_workers.await_count == 1
        assert not runtime.stopped_on_errors

    @pytest.mark.asyncio
    async def test_balance_failure_not_fatal(self, mock_pool, tmp_dir):
        mock_pool.fetch_balance = AsyncMock(side_effect=TransientFetchError("/balance", "down"))
        runtime = _runtime(mock_pool, tmp_dir)
        assert await runtime.log_balance() is None

    @pytest.mark.asyncio
    async def test_consecutive_errors_stop_runtime(self, mock_pool, tmp_dir, monkeypatch):
        runtime = _runtime(mock_pool, tmp_dir)
        runtime.cycle = AsyncMock(side_effect=StorageError("/tmp/data.json", "read-only"))
        monkeypatch.setattr(runtime, "_sleep", AsyncMock())

        await asyncio.wait_for(runtime.run(), timeout=2)
        assert runtime.stopped_on_errors
        assert runtime.cycle.await_count == PollRuntime.MAX_CONSECUTIVE_ERRORS
