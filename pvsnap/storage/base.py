from abc import ABC, abstractmethod


class StorageClient(ABC):
    """Base interface for storage control-plane backends.

    Implementations: LonghornStorageClient.
    """

    @abstractmethod
    def create_snapshot(self, namespace, volume_name, snapshot_name):
        """Ask the backend to take snapshot_name of volume_name. Returns the created resource."""
        pass

    @abstractmethod
    def delete_snapshot(self, namespace, snapshot_name):
        """Delete a snapshot. Returns False if it was already gone."""
        pass

    @abstractmethod
    def get_volume(self, namespace, volume_name):
        """Return the backend's record for a volume, or None if it doesn't exist."""
        pass
