"""Shared pytest fixtures for razeedeploy tests.

``FakeClient`` stands in for the Kubernetes resource client: an in-memory
object store that records every call and can be scripted to return specific
status codes per (verb, kind, name).
"""

import copy

import pytest

from razeedeploy.engine.context import DeployContext
from razeedeploy.kube.resources import Response

DEFAULT_TYPES = {
    ("v1", "Namespace"): False,
    ("v1", "ServiceAccount"): True,
    ("v1", "ConfigMap"): True,
    ("v1", "Secret"): True,
    ("apps/v1", "Deployment"): True,
    ("rbac.authorization.k8s.io/v1", "ClusterRole"): False,
    ("rbac.authorization.k8s.io/v1", "ClusterRoleBinding"): False,
    ("apiextensions.k8s.io/v1", "CustomResourceDefinition"): False,
    ("admissionregistration.k8s.io/v1", "ValidatingWebhookConfiguration"): False,
    ("deploy.razee.io/v1alpha2", "RemoteResource"): True,
}


class FakeMeta:
    def __init__(self, client, api_version, kind, namespaced):
        self.client = client
        self.api_version = api_version
        self.kind = kind
        self.namespaced = namespaced
        self.verbs = ["get", "list", "create", "update", "patch", "delete"]

    def uri(self, name=None, namespace=None):
        parts = [self.api_version]
        if self.namespaced and namespace:
            parts += ["namespaces", namespace]
        parts.append(self.kind.lower())
        if name:
            parts.append(name)
        return "/" + "/".join(parts)

    def get(self, name, namespace=None):
        return self.client.handle("get", self, name, namespace)

    def list(self, namespace=None):
        self.client.calls.append(("list", self.kind, None, namespace))
        items = [
            copy.deepcopy(obj) for (kind, _ns, _name), obj in self.client.objects.items()
            if kind == self.kind
        ]
        return Response(200, {"items": items})

    def post(self, body):
        meta = body.get("metadata") or {}
        return self.client.handle("post", self, meta.get("name"), meta.get("namespace"), body)

    def put(self, body):
        meta = body.get("metadata") or {}
        return self.client.handle("put", self, meta.get("name"), meta.get("namespace"), body)

    def delete(self, name, namespace=None):
        return self.client.handle("delete", self, name, namespace)

    def merge_patch(self, name, namespace, body):
        return self.client.handle("patch", self, name, namespace, body)


class FakeClient:
    def __init__(self, types=None):
        self.types = dict(DEFAULT_TYPES if types is None else types)
        self.objects = {}
        self.scripted = {}
        self.calls = []
        self.bodies = []
        self.describes = []

    def add_type(self, api_version, kind, namespaced=True):
        self.types[(api_version, kind)] = namespaced

    def seed(self, doc):
        meta = doc.get("metadata") or {}
        self.objects[(doc["kind"], meta.get("namespace"), meta["name"])] = copy.deepcopy(doc)

    def script(self, verb, kind, name, *statuses):
        self.scripted[(verb, kind, name)] = list(statuses)

    def describe(self, api_version, kind, verb):
        self.describes.append((api_version, kind, verb))
        if (api_version, kind) not in self.types:
            return None
        return FakeMeta(self, api_version, kind, self.types[(api_version, kind)])

    def writes(self):
        return [c for c in self.calls if c[0] in ("post", "put", "delete", "patch")]

    def calls_for(self, verb):
        return [c for c in self.calls if c[0] == verb]

    def _scripted(self, verb, kind, name):
        queue = self.scripted.get((verb, kind, name))
        if not queue:
            return None
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def handle(self, verb, meta, name, namespace, body=None):
        self.calls.append((verb, meta.kind, name, namespace))
        if body is not None:
            self.bodies.append((verb, meta.kind, copy.deepcopy(body)))
        key = (meta.kind, namespace if meta.namespaced else None, name)
        status = self._scripted(verb, meta.kind, name)
        if status is not None:
            return Response(status, {"message": f"scripted {status}"})

        live = self.objects.get(key)
        if verb == "get":
            return Response(200, copy.deepcopy(live)) if live else Response(404, {"message": "not found"})
        if verb == "post":
            if live:
                return Response(409, {"message": "already exists"})
            stored = copy.deepcopy(body)
            stored.setdefault("metadata", {})["resourceVersion"] = "1"
            self.objects[key] = stored
            return Response(201, copy.deepcopy(stored))
        if verb == "put":
            if not live:
                return Response(404, {"message": "not found"})
            stored = copy.deepcopy(body)
            stored["metadata"]["resourceVersion"] = str(int(live["metadata"].get("resourceVersion", "0")) + 1)
            self.objects[key] = stored
            return Response(200, copy.deepcopy(stored))
        if verb == "delete":
            if not live:
                return Response(404, {"message": "not found"})
            del self.objects[key]
            return Response(200, {})
        if verb == "patch":
            if not live:
                return Response(404, {"message": "not found"})
            live.setdefault("metadata", {})["finalizers"] = None
            return Response(200, copy.deepcopy(live))
        raise AssertionError(f"unexpected verb {verb}")


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def ctx(fake_client, sleeps):
    return DeployContext(fake_client, namespace="razeedeploy", sleep=sleeps)


def make_doc(kind, name, api_version="v1", namespace=None, **extra):
    doc = {"apiVersion": api_version, "kind": kind, "metadata": {"name": name}}
    if namespace:
        doc["metadata"]["namespace"] = namespace
    doc.update(extra)
    return doc


def make_crd(plural="widgets", group="deploy.razee.io", kind="Widget", versions=None):
    return make_doc(
        "CustomResourceDefinition",
        f"{plural}.{group}",
        api_version="apiextensions.k8s.io/v1",
        spec={
            "group": group,
            "names": {"kind": kind, "plural": plural},
            "versions": versions or [{"name": "v1alpha1", "served": True, "storage": True}],
        },
    )
