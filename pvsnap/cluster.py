from kubernetes import client, config as k8s_config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from pvsnap.errors import ConfigurationError, NotFoundError, RemoteCallFailure


def load_cluster_config(kubeconfig=None):
    """Load ambient cluster credentials: in-cluster service account first, kubeconfig second.

    An explicit kubeconfig path skips the in-cluster attempt.
    Raises ConfigurationError if neither source works.
    """
    if not kubeconfig:
        try:
            k8s_config.load_incluster_config()
            return
        except ConfigException:
            pass
    try:
        k8s_config.load_kube_config(config_file=kubeconfig or None)
    except (ConfigException, OSError) as e:
        raise ConfigurationError(f"Failed to load cluster credentials: {e}") from e


def custom_objects_api(kubeconfig=None):
    load_cluster_config(kubeconfig)
    return client.CustomObjectsApi()


def read_persistent_volume(name, kubeconfig=None):
    """Fetch a PersistentVolume and return it as a plain camelCase mapping."""
    load_cluster_config(kubeconfig)
    api_client = client.ApiClient()
    core = client.CoreV1Api(api_client)
    try:
        pv = core.read_persistent_volume(name)
    except ApiException as e:
        if e.status == 404:
            raise NotFoundError(f"PersistentVolume {name} not found") from e
        raise RemoteCallFailure(f"Failed to read PersistentVolume {name}: {e.reason}") from e
    return api_client.sanitize_for_serialization(pv)
