import logging
from typing import Optional

from kubernetes import client, config, dynamic
from kubernetes.dynamic.exceptions import ResourceNotFoundError, ResourceNotUniqueError

from .resources import KubeResourceMeta

logger = logging.getLogger("razeedeploy.kube")

_cached_client: Optional["KubeClient"] = None


class KubeClient:
    """Resolves (apiVersion, kind) to a ``KubeResourceMeta`` via API discovery."""

    def __init__(self, dyn: dynamic.DynamicClient):
        self.dyn = dyn

    def describe(self, api_version: str, kind: str, verb: str) -> Optional[KubeResourceMeta]:
        if not api_version or not kind:
            return None
        try:
            resource = self.dyn.resources.get(api_version=api_version, kind=kind)
        except (ResourceNotFoundError, ResourceNotUniqueError):
            return None
        meta = KubeResourceMeta(self.dyn, resource)
        if verb and meta.verbs and verb not in meta.verbs:
            logger.debug("%s %s does not support verb %s", api_version, kind, verb)
            return None
        return meta


def get_kube_client() -> KubeClient:
    global _cached_client
    if _cached_client:
        return _cached_client
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()
    _cached_client = KubeClient(dynamic.DynamicClient(client.ApiClient()))
    return _cached_client
