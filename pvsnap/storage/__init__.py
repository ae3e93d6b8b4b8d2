from pvsnap.storage.base import StorageClient

DEFAULT_NAMESPACE = "longhorn-system"


def create_storage_client(config=None):
    """Create a storage client from config.

    Config keys:
        storage_backend: "longhorn" (default)
        kubeconfig: optional kubeconfig path; in-cluster credentials otherwise
    """
    config = config or {}
    backend = config.get("storage_backend", "longhorn")

    if backend == "longhorn":
        from pvsnap.storage.longhorn import LonghornStorageClient
        return LonghornStorageClient.from_cluster(config.get("kubeconfig"))

    raise ValueError(f"Unknown storage backend: {backend!r}. Use 'longhorn'.")


__all__ = ["StorageClient", "create_storage_client", "DEFAULT_NAMESPACE"]
