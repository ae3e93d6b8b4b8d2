import threading

import pytest

from pvsnap.errors import DuplicateSnapshotError
from pvsnap.registry import DURABLE, FAILED, PENDING, Registry, Snapshot, Volume


def test_get_or_insert_volume_keeps_first_record():
    registry = Registry()
    first = registry.get_or_insert_volume("pv-1", lambda: Volume("pv-1", storage_class="fast"))
    second = registry.get_or_insert_volume("pv-1", lambda: Volume("pv-1", storage_class="slow"))

    assert second is first
    assert registry.lookup_volume("pv-1").storage_class == "fast"
    assert len(registry.volumes()) == 1


def test_get_or_insert_volume_does_not_call_factory_when_present():
    registry = Registry()
    registry.get_or_insert_volume("pv-1", lambda: Volume("pv-1"))

    def boom():
        raise AssertionError("factory should not run")

    registry.get_or_insert_volume("pv-1", boom)


def test_lookup_unknown_volume_returns_none():
    assert Registry().lookup_volume("nope") is None


def test_concurrent_registration_yields_one_record():
    registry = Registry()
    barrier = threading.Barrier(8)
    results = []

    def worker(zone):
        barrier.wait()
        results.append(registry.get_or_insert_volume("pv-1", lambda: Volume("pv-1", availability_zone=zone)))

    threads = [threading.Thread(target=worker, args=(f"zone-{i}",)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len({id(v) for v in results}) == 1
    assert len(registry.volumes()) == 1


def test_insert_snapshot_rejects_duplicate_id():
    registry = Registry()
    registry.insert_snapshot("s1", Snapshot("s1", "pv-1"))

    with pytest.raises(DuplicateSnapshotError):
        registry.insert_snapshot("s1", Snapshot("s1", "pv-2"))
    assert registry.get_snapshot("s1").source_volume_name == "pv-1"


def test_contains_and_remove_snapshot():
    registry = Registry()
    registry.insert_snapshot("s1", Snapshot("s1", "pv-1"))
    assert registry.contains_snapshot("s1")

    removed = registry.remove_snapshot("s1")
    assert removed.snapshot_id == "s1"
    assert not registry.contains_snapshot("s1")
    assert registry.remove_snapshot("s1") is None


def test_get_snapshot_returns_a_copy():
    registry = Registry()
    registry.insert_snapshot("s1", Snapshot("s1", "pv-1", tags={"k": "v"}))

    copy = registry.get_snapshot("s1")
    copy.tags["k"] = "changed"
    copy.state = FAILED

    stored = registry.get_snapshot("s1")
    assert stored.tags == {"k": "v"}
    assert stored.state == PENDING


def test_mark_snapshot_state():
    registry = Registry()
    registry.insert_snapshot("s1", Snapshot("s1", "pv-1"))

    assert registry.mark_snapshot("s1", FAILED, error="boom")
    assert registry.get_snapshot("s1").error == "boom"
    assert registry.mark_snapshot("s1", DURABLE)
    assert registry.get_snapshot("s1").state == DURABLE
    assert not registry.mark_snapshot("missing", DURABLE)

    with pytest.raises(ValueError):
        registry.mark_snapshot("s1", "deleted")


def test_snapshots_lists_every_record():
    registry = Registry()
    registry.insert_snapshot("a", Snapshot("a", "pv-1"))
    registry.insert_snapshot("b", Snapshot("b", "pv-2"))
    registry.insert_snapshot("c", Snapshot("c", "pv-1"))

    assert sorted(s.snapshot_id for s in registry.snapshots()) == ["a", "b", "c"]
