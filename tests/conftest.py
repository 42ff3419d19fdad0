"""Pytest configuration and fixtures for installer tests."""

import copy
from typing import Any, Optional

import pytest

from razee_installer import ApiResponse, Resolved, Unresolved

CLUSTER_SCOPED = {"Namespace", "ClusterRole", "ClusterRoleBinding", "CustomResourceDefinition"}


class FakeCluster:
    """In-memory API server keyed by type, namespace and name."""

    def __init__(self):
        self.objects: dict[tuple, dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self._version = 0

    def next_version(self) -> str:
        self._version += 1
        return str(self._version)


class FakeHandle:
    """ResourceTypeHandle over a FakeCluster."""

    def __init__(self, cluster: FakeCluster, api_version: str, kind: str, verb: str):
        self.cluster = cluster
        self.api_version = api_version
        self.kind = kind
        self.verb = verb
        self.namespaced = kind not in CLUSTER_SCOPED

    def _key(self, name: Optional[str], namespace: Optional[str]) -> tuple:
        return (self.api_version, self.kind, namespace, name)

    def uri(self, name, namespace, status=False):
        path = f"/apis/{self.api_version}/namespaces/{namespace}/{self.kind.lower()}s/{name}"
        return f"{path}/status" if status else path

    def get(self, name, namespace):
        self.cluster.calls.append(("get", name))
        live = self.cluster.objects.get(self._key(name, namespace))
        if live is None:
            return ApiResponse(status_code=404, body={"kind": "Status", "reason": "NotFound"})
        return ApiResponse(status_code=200, body=copy.deepcopy(live))

    def post(self, doc):
        metadata = doc["metadata"]
        self.cluster.calls.append(("post", metadata["name"]))
        key = self._key(metadata["name"], metadata.get("namespace"))
        if key in self.cluster.objects:
            return ApiResponse(
                status_code=409,
                body={
                    "kind": "Status",
                    "reason": "AlreadyExists",
                    "message": f'{self.kind.lower()}s "{metadata["name"]}" already exists',
                },
            )
        if "resourceVersion" in metadata:
            return ApiResponse(
                status_code=400,
                body={"reason": "BadRequest", "message": "resourceVersion should not be set on objects to be created"},
            )
        stored = copy.deepcopy(doc)
        stored["metadata"]["resourceVersion"] = self.cluster.next_version()
        self.cluster.objects[key] = stored
        return ApiResponse(status_code=201, body=copy.deepcopy(stored))

    def put(self, doc):
        metadata = doc["metadata"]
        self.cluster.calls.append(("put", metadata["name"]))
        key = self._key(metadata["name"], metadata.get("namespace"))
        live = self.cluster.objects.get(key)
        if live is None:
            return ApiResponse(status_code=404, body={"reason": "NotFound", "message": "not found"})
        if metadata.get("resourceVersion") != live["metadata"]["resourceVersion"]:
            return ApiResponse(
                status_code=409,
                body={"reason": "Conflict", "message": "the object has been modified"},
            )
        stored = copy.deepcopy(doc)
        stored["metadata"]["resourceVersion"] = self.cluster.next_version()
        self.cluster.objects[key] = stored
        return ApiResponse(status_code=200, body=copy.deepcopy(stored))


class FakeResolver:
    """ResourceTypeResolver over a FakeCluster with a fixed set of known types."""

    def __init__(self, cluster: FakeCluster, known: Optional[set] = None):
        self.cluster = cluster
        self.known = known if known is not None else {("v1", "ConfigMap")}
        self.attempts: list[tuple[str, str, str]] = []
        # (api_version, kind) -> number of misses before the type appears
        self.delays: dict[tuple[str, str], int] = {}

    def register(self, api_version: str, kind: str, after_misses: int = 0) -> None:
        self.known.add((api_version, kind))
        if after_misses:
            self.delays[(api_version, kind)] = after_misses

    def resolve(self, api_version, kind, verb):
        self.attempts.append((api_version, kind, verb))
        key = (api_version, kind)
        if self.delays.get(key, 0) > 0:
            self.delays[key] -= 1
            return Unresolved(api_version, kind)
        if key not in self.known:
            return Unresolved(api_version, kind)
        return Resolved(FakeHandle(self.cluster, api_version, kind, verb))


@pytest.fixture
def fake_cluster():
    """Empty in-memory cluster."""
    return FakeCluster()


@pytest.fixture
def fake_resolver(fake_cluster):
    """Resolver that knows v1 ConfigMap and v1 Namespace."""
    return FakeResolver(fake_cluster, known={("v1", "ConfigMap"), ("v1", "Namespace")})


@pytest.fixture
def configmap():
    """Sample manifest-origin ConfigMap."""

    def build(name: str = "a", namespace: Optional[str] = None) -> dict[str, Any]:
        metadata = {"name": name}
        if namespace:
            metadata["namespace"] = namespace
        return {"apiVersion": "v1", "kind": "ConfigMap", "metadata": metadata, "data": {"key": name}}

    return build
