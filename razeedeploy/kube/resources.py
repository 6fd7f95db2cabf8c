import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from kubernetes.client import ApiException

logger = logging.getLogger("razeedeploy.kube")

MERGE_PATCH = "application/merge-patch+json"


@dataclass
class Response:
    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)


def _load(data) -> Dict[str, Any]:
    if not data:
        return {}
    if isinstance(data, (bytes, bytearray)):
        data = data.decode("utf8")
    if isinstance(data, dict):
        return data
    try:
        loaded = json.loads(data)
    except ValueError:
        return {"message": data}
    return loaded if isinstance(loaded, dict) else {"items": loaded}


class KubeResourceMeta:
    """Verbs for one resource type.

    Ordinary HTTP errors come back as a ``Response``; only transport faults
    (connection errors, ApiException with status 0) raise.
    """

    def __init__(self, dyn, resource):
        self._dyn = dyn
        self._resource = resource

    @property
    def namespaced(self) -> bool:
        return bool(self._resource.namespaced)

    @property
    def verbs(self) -> List[str]:
        return list(self._resource.verbs or [])

    def uri(self, name: Optional[str] = None, namespace: Optional[str] = None) -> str:
        return self._resource.path(name=name, namespace=namespace)

    def _call(self, method: str, path: str, body=None, content_type: Optional[str] = None) -> Response:
        kwargs: Dict[str, Any] = {"serialize": False}
        if content_type:
            kwargs["content_type"] = content_type
        try:
            resp = self._dyn.request(method, path, body=body, **kwargs)
        except ApiException as e:
            if not e.status:
                raise
            return Response(e.status, _load(e.body))
        return Response(resp.status, _load(resp.data))

    def get(self, name: str, namespace: Optional[str] = None) -> Response:
        return self._call("get", self.uri(name, namespace))

    def list(self, namespace: Optional[str] = None) -> Response:
        return self._call("get", self.uri(namespace=namespace))

    def post(self, body: Dict[str, Any]) -> Response:
        ns = (body.get("metadata") or {}).get("namespace")
        return self._call("post", self.uri(namespace=ns), body=body)

    def put(self, body: Dict[str, Any]) -> Response:
        meta = body.get("metadata") or {}
        return self._call("put", self.uri(meta.get("name"), meta.get("namespace")), body=body)

    def delete(self, name: str, namespace: Optional[str] = None) -> Response:
        return self._call("delete", self.uri(name, namespace))

    def merge_patch(self, name: str, namespace: Optional[str], body: Dict[str, Any]) -> Response:
        return self._call("patch", self.uri(name, namespace), body=body, content_type=MERGE_PATCH)
