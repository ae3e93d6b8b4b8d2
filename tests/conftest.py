"""Shared fixtures: a scriptable storage backend and an isolated ~/.pvsnap."""

import pytest

from pvsnap.errors import RemoteCallFailure
from pvsnap.storage.base import StorageClient


class FakeStorageClient(StorageClient):
    """In-memory stand-in for Longhorn.

    Set `fail_create` / `fail_delete` to make the next calls raise
    RemoteCallFailure. `on_create` runs while the create call is in flight.
    """

    def __init__(self):
        self.snapshots = {}
        self.volumes = {}
        self.calls = []
        self.fail_create = False
        self.fail_delete = False
        self.on_create = None

    def create_snapshot(self, namespace, volume_name, snapshot_name):
        self.calls.append(("create", namespace, volume_name, snapshot_name))
        if self.on_create:
            self.on_create(snapshot_name)
        if self.fail_create:
            raise RemoteCallFailure(f"Failed to create snapshot {snapshot_name}: 500 boom")
        self.snapshots[snapshot_name] = {"namespace": namespace, "volume": volume_name}
        return {"metadata": {"name": snapshot_name}}

    def delete_snapshot(self, namespace, snapshot_name):
        self.calls.append(("delete", namespace, snapshot_name))
        if self.fail_delete:
            raise RemoteCallFailure(f"Failed to delete snapshot {snapshot_name}: 500 boom")
        return self.snapshots.pop(snapshot_name, None) is not None

    def get_volume(self, namespace, volume_name):
        self.calls.append(("get_volume", namespace, volume_name))
        return self.volumes.get(volume_name)


@pytest.fixture
def storage():
    return FakeStorageClient()


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the global config and audit log at a temp dir."""
    home = tmp_path / "home"
    monkeypatch.setattr("pvsnap.config.GLOBAL_CONFIG_FILE", home / ".pvsnap" / "config.json")
    monkeypatch.setattr("pvsnap.log.LOGS_FILE", home / ".pvsnap" / "logs.jsonl")
    monkeypatch.setattr("pvsnap.cli.LOGS_FILE", home / ".pvsnap" / "logs.jsonl")
    return home


def _pv(name="pv-1", storage_class="fast", capacity="10Gi", **extra_spec):
    spec = {"storageClassName": storage_class, "capacity": {"storage": capacity}}
    spec.update(extra_spec)
    return {
        "apiVersion": "v1",
        "kind": "PersistentVolume",
        "metadata": {"name": name, "labels": {"app": "db"}},
        "spec": spec,
    }


@pytest.fixture
def make_pv():
    return _pv
