"""Tests for tally models."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from minetally.tally.models import (
    MAX_TIMESTAMP,
    Payment,
    PersistedState,
    ShareSample,
    Tranche,
    User,
    WorkerIdentity,
)


class TestWorkerIdentity:

    def test_accepts_pool_alias(self):
        worker = WorkerIdentity.model_validate({"uid": 7, "id": "rig"})
        assert worker.name == "rig"

    def test_frozen_and_hashable(self):
        worker = WorkerIdentity(uid=7, name="rig")
        with pytest.raises(ValidationError):
            worker.name = "other"
        assert {worker, WorkerIdentity(uid=7, name="rig")} == {worker}


class TestValidation:

    def test_negative_shares_rejected(self):
        with pytest.raises(ValidationError):
            ShareSample(timestamp=1, shares=-1)

    def test_timestamps_bounded_to_renderable_range(self):
        with pytest.raises(ValidationError):
            Payment(timestamp=1620300000000, amount=Decimal("1"))
        with pytest.raises(ValidationError):
            ShareSample(timestamp=-1, shares=1)
        assert Payment(timestamp=MAX_TIMESTAMP, amount=Decimal("1")).timestamp == MAX_TIMESTAMP

    def test_user_name_required(self):
        with pytest.raises(ValidationError):
            User(name="", workers=[])

    def test_user_owns(self):
        assert User(name="alice", workers=["a1"]).owns("a1")
        assert not User(name="alice", workers=["a1"]).owns("a2")

    def test_tranche_is_empty(self):
        assert Tranche(start_exclusive=5, end_inclusive=5, amount=Decimal("1")).is_empty
        assert not Tranche(start_exclusive=0, end_inclusive=5, amount=Decimal("1")).is_empty


class TestPersistedState:

    def test_json_dict_uses_pool_vocabulary(self):
        state = PersistedState(
            workers=[WorkerIdentity(uid=1, name="rig")],
            shares={1: {100: 4}},
        )
        assert state.to_json_dict() == {
            "workers": [{"uid": 1, "id": "rig"}],
            "shares": {"1": {"100": 4}},
        }

    def test_string_keys_coerced_on_load(self):
        state = PersistedState.model_validate({
            "workers": [{"uid": 1, "id": "rig"}],
            "shares": {"1": {"100": 4}},
        })
        assert state.shares == {1: {100: 4}}
