"""In-memory index of the volumes and snapshots this process knows about.

The registry is a cache: it lives as long as the coordinator that owns it and
is rebuilt from scratch on restart. The storage control plane stays the
source of truth for whether a snapshot actually exists.

All mutation goes through one lock. The lock covers a single
read-check-insert and is never held while talking to the cluster.
"""

import threading
from dataclasses import dataclass, field, replace

from pvsnap.errors import DuplicateSnapshotError

PENDING = "pending"
DURABLE = "durable"
FAILED = "failed"

SNAPSHOT_STATES = (PENDING, DURABLE, FAILED)


@dataclass
class Volume:
    volume_name: str
    availability_zone: str = ""
    storage_class: str = ""
    data_engine: str = "v1"
    capacity: str = ""


@dataclass
class Snapshot:
    snapshot_id: str
    source_volume_name: str
    availability_zone: str = ""
    tags: dict = field(default_factory=dict)
    state: str = PENDING
    error: str = ""


class Registry:

    def __init__(self):
        self._volumes = {}
        self._snapshots = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Volumes
    # ------------------------------------------------------------------

    def get_or_insert_volume(self, name, factory):
        """Return the volume recorded for name, building it with factory() if absent.

        First write wins: a later call with a different factory gets the
        record from the first call back.
        """
        with self._lock:
            volume = self._volumes.get(name)
            if volume is None:
                volume = factory()
                self._volumes[name] = volume
            return volume

    def lookup_volume(self, name):
        with self._lock:
            return self._volumes.get(name)

    def volumes(self):
        with self._lock:
            return list(self._volumes.values())

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def insert_snapshot(self, snapshot_id, snapshot):
        with self._lock:
            if snapshot_id in self._snapshots:
                raise DuplicateSnapshotError(f"Snapshot {snapshot_id} is already registered")
            self._snapshots[snapshot_id] = snapshot

    def contains_snapshot(self, snapshot_id):
        with self._lock:
            return snapshot_id in self._snapshots

    def get_snapshot(self, snapshot_id):
        """Return a copy of the snapshot record, or None."""
        with self._lock:
            snapshot = self._snapshots.get(snapshot_id)
            return replace(snapshot, tags=dict(snapshot.tags)) if snapshot else None

    def mark_snapshot(self, snapshot_id, state, error=""):
        if state not in SNAPSHOT_STATES:
            raise ValueError(f"Unknown snapshot state: {state!r}. Use one of {SNAPSHOT_STATES}.")
        with self._lock:
            snapshot = self._snapshots.get(snapshot_id)
            if snapshot is None:
                return False
            snapshot.state = state
            snapshot.error = error
            return True

    def remove_snapshot(self, snapshot_id):
        """Drop a snapshot record. Returns the removed record, or None if it was unknown."""
        with self._lock:
            return self._snapshots.pop(snapshot_id, None)

    def snapshots(self):
        with self._lock:
            return list(self._snapshots.values())
