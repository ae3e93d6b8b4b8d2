"""Longhorn storage control plane, reached through its Kubernetes custom resources.

Snapshots are `snapshots.longhorn.io` objects named after the snapshot id:

    apiVersion: longhorn.io/v1beta2
    kind: Snapshot
    metadata: {name: velero-snap-<token>}
    spec: {volume: <volume name>, createSnapshot: true}

Longhorn's controller notices the object and takes the snapshot. Deleting the
object removes the snapshot. Volumes are `volumes.longhorn.io` objects named
after the PV.
"""

from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from pvsnap.cluster import custom_objects_api
from pvsnap.errors import RemoteCallFailure
from pvsnap.storage.base import StorageClient

GROUP = "longhorn.io"
VERSION = "v1beta2"
SNAPSHOT_PLURAL = "snapshots"
VOLUME_PLURAL = "volumes"


def _failure(action, name, e):
    return RemoteCallFailure(f"Failed to {action} {name}: {e.status} {e.reason}")


class LonghornStorageClient(StorageClient):

    def __init__(self, api):
        self._api = api

    @classmethod
    def from_cluster(cls, kubeconfig=None):
        return cls(custom_objects_api(kubeconfig))

    def snapshot_body(self, volume_name, snapshot_name):
        return {
            "apiVersion": f"{GROUP}/{VERSION}",
            "kind": "Snapshot",
            "metadata": {"name": snapshot_name},
            "spec": {
                "volume": volume_name,
                "createSnapshot": True,
            },
        }

    def create_snapshot(self, namespace, volume_name, snapshot_name):
        body = self.snapshot_body(volume_name, snapshot_name)
        try:
            return self._api.create_namespaced_custom_object(
                GROUP, VERSION, namespace, SNAPSHOT_PLURAL, body
            )
        except ApiException as e:
            raise _failure("create snapshot", snapshot_name, e) from e
        except HTTPError as e:
            raise RemoteCallFailure(f"Failed to create snapshot {snapshot_name}: {e}") from e

    def delete_snapshot(self, namespace, snapshot_name):
        try:
            self._api.delete_namespaced_custom_object(
                GROUP, VERSION, namespace, SNAPSHOT_PLURAL, snapshot_name
            )
        except ApiException as e:
            if e.status == 404:
                return False
            raise _failure("delete snapshot", snapshot_name, e) from e
        except HTTPError as e:
            raise RemoteCallFailure(f"Failed to delete snapshot {snapshot_name}: {e}") from e
        return True

    def get_volume(self, namespace, volume_name):
        try:
            return self._api.get_namespaced_custom_object(
                GROUP, VERSION, namespace, VOLUME_PLURAL, volume_name
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise _failure("read volume", volume_name, e) from e
        except HTTPError as e:
            raise RemoteCallFailure(f"Failed to read volume {volume_name}: {e}") from e
