"""Tests for the on-disk snapshot store."""

import json
import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from minetally.errors import StorageError
from minetally.tally.models import PersistedState, ShareSample, WorkerIdentity
from minetally.tally.share_store import ShareStore
from minetally.tally.store.filesystem import DATA_FILE_NAME, FilesystemStateStore
from minetally.tally.store.interface import StateStore


@pytest.fixture
def tmp_dir():
    with tempfile.TemporaryDirectory() as d:
        yield d


def _populated_store() -> ShareStore:
    store = ShareStore()
    store.register(WorkerIdentity(uid=16818403, name="DESKTOP-AH56HCB"))
    store.register(WorkerIdentity(uid=20029185, name="LAPTOP-707IIDV9"))
    store.merge(16818403, [ShareSample(timestamp=1620277000, shares=4)])
    store.merge(20029185, [ShareSample(timestamp=1620277000, shares=2), ShareSample(timestamp=1620277600, shares=3)])
    return store


class TestFilesystemStateStore:

    def test_implements_protocol(self, tmp_dir):
        assert isinstance(FilesystemStateStore(tmp_dir), StateStore)

    def test_missing_file_loads_empty_state(self, tmp_dir):
        state = FilesystemStateStore(tmp_dir).load()
        assert state.workers == []
        assert state.shares == {}

    def test_save_then_load_roundtrip(self, tmp_dir):
        fs = FilesystemStateStore(tmp_dir)
        original = _populated_store()
        fs.save(original.snapshot())

        restored = ShareStore()
        restored.restore(fs.load())
        assert [w.uid for w in restored.workers] == [16818403, 20029185]
        assert restored.total_shares(20029185) == 5
        assert restored.total_shares(20029185, 1620277000, 1620277600) == 3

    def test_on_disk_layout(self, tmp_dir):
        fs = FilesystemStateStore(tmp_dir)
        fs.save(_populated_store().snapshot())
        with open(Path(tmp_dir) / DATA_FILE_NAME) as f:
            data = json.load(f)
        assert data["workers"][0] == {"uid": 16818403, "id": "DESKTOP-AH56HCB"}
        assert data["shares"]["20029185"] == {"1620277000": 2, "1620277600": 3}

    def test_reads_legacy_worker_records(self, tmp_dir):
        legacy = {
            "workers": [{
                "uid": 16818403, "id": "DESKTOP-AH56HCB",
                "hashrate": 0, "lastShare": 1620277013, "rating": 20062,
            }],
            "shares": {"16818403": {"1620277000": 7}},
        }
        (Path(tmp_dir) / DATA_FILE_NAME).write_text(json.dumps(legacy))
        state = FilesystemStateStore(tmp_dir).load()
        assert state.workers == [WorkerIdentity(uid=16818403, name="DESKTOP-AH56HCB")]
        assert state.shares == {16818403: {1620277000: 7}}

    def test_save_overwrites_wholesale(self, tmp_dir):
        fs = FilesystemStateStore(tmp_dir)
        fs.save(_populated_store().snapshot())
        fs.save(PersistedState(workers=[WorkerIdentity(uid=1, name="x")], shares={1: {5: 5}}))
        state = fs.load()
        assert [w.uid for w in state.workers] == [1]
        assert state.shares == {1: {5: 5}}

    def test_creates_data_dir(self, tmp_dir):
        fs = FilesystemStateStore(Path(tmp_dir) / "nested" / "dir")
        fs.save(PersistedState())
        assert fs.path.exists()

    def test_corrupt_file_raises_storage_error(self, tmp_dir):
        (Path(tmp_dir) / DATA_FILE_NAME).write_text("{not json")
        with pytest.raises(StorageError):
            FilesystemStateStore(tmp_dir).load()

    def test_wrong_shape_raises_storage_error(self, tmp_dir):
        (Path(tmp_dir) / DATA_FILE_NAME).write_text(json.dumps({"workers": "nope"}))
        with pytest.raises(StorageError):
            FilesystemStateStore(tmp_dir).load()

    def test_failed_write_keeps_previous_snapshot(self, tmp_dir):
        fs = FilesystemStateStore(tmp_dir)
        fs.save(_populated_store().snapshot())

        with patch("minetally.tally.store.filesystem.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageError):
                fs.save(PersistedState())

        state = fs.load()
        assert len(state.workers) == 2
        leftovers = [p for p in os.listdir(tmp_dir) if p.endswith(".tmp")]
        assert leftovers == []
