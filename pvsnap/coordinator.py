import time
import uuid
from datetime import datetime

from pvsnap import cloudwatch
from pvsnap.descriptor import from_unstructured, to_unstructured
from pvsnap.errors import ConfigurationError, DuplicateSnapshotError, NotFoundError
from pvsnap.log import write_log
from pvsnap.naming import SnapshotIdGenerator
from pvsnap.registry import DURABLE, FAILED, Registry, Snapshot, Volume
from pvsnap.storage import DEFAULT_NAMESPACE, create_storage_client

VOLUME_TYPE = "longhorn-volume"
DEFAULT_DATA_ENGINE = "v1"
FAULTED = "faulted"


class VolumeSnapshotter:
    """Volume-snapshotter for a backup orchestrator, backed by Longhorn.

    Tracks the volumes and snapshots seen during a backup or restore session
    and rewrites PersistentVolume names on restore. The orchestrator calls
    init() once (possibly again later), then the operations below; the
    snapshotter never calls out on its own.

    Registry, storage client and id generator can be injected, so several
    independent snapshotters can live in one process.
    """

    def __init__(self, registry=None, storage=None, generator=None):
        self.registry = registry if registry is not None else Registry()
        self.storage = storage
        self.config = {}
        self._generator = generator
        self._generator_injected = generator is not None

    def init(self, config=None):
        """Take the orchestrator's option map and connect to the storage control plane.

        Safe to call more than once: the registry keeps its contents, and an
        already connected (or injected) storage client is reused.
        Raises ConfigurationError if cluster credentials can't be loaded.
        """
        self.config = dict(config or {})

        if not self._generator_injected:
            self._generator = SnapshotIdGenerator(self.registry, prefix=self.config.get("snapshot_prefix"))

        if self.storage is None:
            try:
                self.storage = create_storage_client(self.config)
            except ValueError as e:
                raise ConfigurationError(str(e)) from e

        log_group = self.config.get("cloudwatch_log_group", "")
        log_stream = f"{datetime.now().strftime('%Y/%m/%d')}/{uuid.uuid4().hex[:8]}"
        cloudwatch.init(log_group, log_stream)

    @property
    def namespace(self):
        return self.config.get("namespace") or DEFAULT_NAMESPACE

    @property
    def data_engine(self):
        return self.config.get("data_engine") or DEFAULT_DATA_ENGINE

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def create_snapshot(self, volume_id, volume_az="", tags=None):
        """Snapshot volume_id and return the new snapshot id.

        The snapshot is registered as pending before the storage call, so
        concurrent identity queries already see it. If the storage call fails
        the record stays behind as a failed tombstone and the storage error
        (normally RemoteCallFailure) is re-raised.
        """
        storage = self._require_storage()
        started = time.time()
        generator = self._require_generator()

        # Registering the volume is first-write-wins; an existing record keeps its zone and class.
        self.registry.get_or_insert_volume(
            volume_id,
            lambda: Volume(volume_name=volume_id, availability_zone=volume_az or "",
                           data_engine=self.data_engine),
        )

        while True:
            snapshot_id = generator.generate()
            snapshot = Snapshot(
                snapshot_id=snapshot_id,
                source_volume_name=volume_id,
                availability_zone=volume_az or "",
                tags=dict(tags or {}),
            )
            try:
                self.registry.insert_snapshot(snapshot_id, snapshot)
                break
            except DuplicateSnapshotError:
                # Another caller claimed the same id between generate() and insert.
                continue

        try:
            storage.create_snapshot(self.namespace, volume_id, snapshot_id)
        except Exception as e:
            self.registry.mark_snapshot(snapshot_id, FAILED, error=str(e))
            self._record("snapshot.create", started, FAILED,
                         snapshot_id=snapshot_id, volume_id=volume_id, error=str(e))
            raise

        self.registry.mark_snapshot(snapshot_id, DURABLE)
        self._record("snapshot.create", started, DURABLE,
                     snapshot_id=snapshot_id, volume_id=volume_id)
        return snapshot_id

    def delete_snapshot(self, snapshot_id):
        """Delete the snapshot from the storage control plane and forget it locally.

        A snapshot the backend no longer has counts as deleted. Unknown ids are
        still sent to the backend, since the orchestrator routinely deletes
        snapshots taken by an earlier process.
        """
        storage = self._require_storage()
        started = time.time()
        snapshot = self.registry.get_snapshot(snapshot_id)
        volume_id = snapshot.source_volume_name if snapshot else ""

        try:
            existed = storage.delete_snapshot(self.namespace, snapshot_id)
        except Exception as e:
            self._record("snapshot.delete", started, "error",
                         snapshot_id=snapshot_id, volume_id=volume_id, error=str(e))
            raise

        self.registry.remove_snapshot(snapshot_id)
        self._record("snapshot.delete", started, "deleted" if existed else "absent",
                     snapshot_id=snapshot_id, volume_id=volume_id)

    def snapshot_state(self, snapshot_id):
        snapshot = self.registry.get_snapshot(snapshot_id)
        if snapshot is None:
            raise NotFoundError(f"snapshot {snapshot_id} is not known to this snapshotter")
        return snapshot.state

    def create_volume_from_snapshot(self, snapshot_id, volume_type="", volume_az="", iops=None):
        """Return the volume id a restore from snapshot_id should attach to.

        Longhorn restores in place, so this is the snapshot's source volume.
        """
        snapshot = self.registry.get_snapshot(snapshot_id)
        if snapshot is None:
            raise NotFoundError(f"snapshot {snapshot_id} is not known to this snapshotter")
        return snapshot.source_volume_name

    # ------------------------------------------------------------------
    # Volume identity
    # ------------------------------------------------------------------

    def get_volume_id(self, unstructured_pv):
        """Return the volume id for a PersistentVolume mapping.

        PVs without a name or storage class aren't ours to snapshot; they get
        "" and leave the registry untouched. Otherwise the PV name is the
        volume id.
        """
        started = time.time()
        pv = from_unstructured(unstructured_pv)
        if not pv.name or not pv.storage_class:
            return ""

        self.registry.get_or_insert_volume(
            pv.name,
            lambda: Volume(volume_name=pv.name, storage_class=pv.storage_class,
                           capacity=pv.storage_capacity, data_engine=self.data_engine),
        )
        self._trace("volume.get_id", started, "ok", volume_id=pv.name)
        return pv.name

    def set_volume_id(self, unstructured_pv, volume_id):
        """Return a copy of the PersistentVolume renamed to the registry's name for volume_id.

        Raises NotFoundError if volume_id was never registered in this session
        (through get_volume_id or create_snapshot). The input mapping is never
        modified.
        """
        started = time.time()
        pv = from_unstructured(unstructured_pv)

        volume = self.registry.lookup_volume(volume_id)
        if volume is None:
            self._trace("volume.set_id", started, "error", volume_id=volume_id, error="not found")
            raise NotFoundError(f"volume {volume_id} does not exist in the group")

        original_name = pv.name
        pv.name = volume.volume_name
        result = to_unstructured(pv)
        self._record("volume.set_id", started, "ok", volume_id=volume_id, previous_name=original_name)
        return result

    def is_volume_ready(self, volume_id, volume_az=""):
        """True unless the storage backend reports the volume missing or faulted."""
        if self.storage is None:
            return True
        volume = self.storage.get_volume(self.namespace, volume_id)
        if volume is None:
            return False
        return (volume.get("status") or {}).get("robustness") != FAULTED

    def get_volume_info(self, volume_id, volume_az=""):
        """Return (volume type, IOPS). Longhorn has no provisioned IOPS."""
        return VOLUME_TYPE, None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_storage(self):
        if self.storage is None:
            raise ConfigurationError("Snapshotter is not initialized. Call init() first.")
        return self.storage

    def _require_generator(self):
        if self._generator is None:
            self._generator = SnapshotIdGenerator(self.registry, prefix=self.config.get("snapshot_prefix"))
        return self._generator

    def _trace(self, operation, started, result, **meta):
        cloudwatch.emit(operation, result, elapsed_ms=(time.time() - started) * 1000, **meta)

    def _record(self, event, started, result, **meta):
        """Emit a span and, when an audit log is configured, append an audit entry.

        Never raises: by the time this runs the storage call has already
        succeeded or failed, and the caller needs that outcome.
        """
        self._trace(event, started, result, **meta)
        audit_log = self.config.get("audit_log")
        if not audit_log:
            return
        try:
            write_log({"event": event, "result": result, **meta}, path=audit_log)
        except OSError:
            pass  # the snapshot call already happened; its outcome stands


