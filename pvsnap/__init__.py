from pvsnap.coordinator import VolumeSnapshotter
from pvsnap.registry import Registry, Volume, Snapshot

__version__ = "0.1.0"

__all__ = ["VolumeSnapshotter", "Registry", "Volume", "Snapshot"]
