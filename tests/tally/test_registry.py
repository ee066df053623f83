"""Tests for WorkerRegistry ownership lookup."""

from minetally.tally.models import User, WorkerIdentity
from minetally.tally.registry import WorkerRegistry


def _registry() -> WorkerRegistry:
    return WorkerRegistry([
        User(name="alice", workers=["rig-a", "rig-shared"]),
        User(name="bob", workers=["rig-b", "rig-shared"]),
    ])


class TestResolveOwner:

    def test_resolves_declared_worker(self):
        owner = _registry().resolve_owner("rig-b")
        assert owner is not None
        assert owner.name == "bob"

    def test_first_user_in_config_order_wins(self):
        assert _registry().resolve_owner("rig-shared").name == "alice"

    def test_unclaimed_worker_is_none(self):
        assert _registry().resolve_owner("stranger") is None

    def test_is_known(self):
        registry = _registry()
        assert registry.is_known("rig-a")
        assert not registry.is_known("stranger")

    def test_empty_registry(self):
        registry = WorkerRegistry([])
        assert registry.user_count == 0
        assert registry.resolve_owner("rig-a") is None

    def test_lookup_is_by_name_exact_match(self):
        assert _registry().resolve_owner("RIG-A") is None


class TestUnknownWorkers:

    def test_deduplicated_by_uid(self):
        registry = _registry()
        workers = [
            WorkerIdentity(uid=9, name="stranger"),
            WorkerIdentity(uid=9, name="stranger"),
            WorkerIdentity(uid=1, name="rig-a"),
        ]
        unknown = registry.unknown_workers(workers)
        assert [w.uid for w in unknown] == [9]

    def test_same_name_different_uids_listed_separately(self):
        registry = _registry()
        workers = [
            WorkerIdentity(uid=12, name="stranger"),
            WorkerIdentity(uid=11, name="stranger"),
        ]
        assert [w.uid for w in registry.unknown_workers(workers)] == [11, 12]

    def test_sorted_by_name(self):
        registry = _registry()
        workers = [
            WorkerIdentity(uid=1, name="zeta"),
            WorkerIdentity(uid=2, name="alpha"),
        ]
        assert [w.name for w in registry.unknown_workers(workers)] == ["alpha", "zeta"]

    def test_none_unknown(self):
        registry = _registry()
        assert registry.unknown_workers([WorkerIdentity(uid=1, name="rig-a")]) == []
