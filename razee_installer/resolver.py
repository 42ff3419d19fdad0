"""Resolve apiVersion/kind pairs to resource endpoints on a live cluster."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union

from kubernetes.client.exceptions import ApiException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import ResourceNotFoundError, ResourceNotUniqueError
from kubernetes.dynamic.resource import Resource

from .models import ApiResponse

logger = logging.getLogger(__name__)

# Discovery reports Kubernetes verbs, callers speak HTTP.
VERB_ALIASES = {"post": "create", "put": "update"}


class ResourceTypeHandle(Protocol):
    """Endpoint for one resource type, valid for a single apply operation."""

    namespaced: bool

    def uri(self, name: Optional[str], namespace: Optional[str], status: bool = False) -> str:
        ...

    def get(self, name: str, namespace: Optional[str]) -> ApiResponse:
        ...

    def post(self, doc: dict[str, Any]) -> ApiResponse:
        ...

    def put(self, doc: dict[str, Any]) -> ApiResponse:
        ...


@dataclass(frozen=True)
class Resolved:
    """The type is registered and supports the requested verb."""

    handle: ResourceTypeHandle


@dataclass(frozen=True)
class Unresolved:
    """The type is unknown, not yet registered, or lacks the requested verb."""

    api_version: str
    kind: str
    reason: str = "not found"


Resolution = Union[Resolved, Unresolved]


class ResourceTypeResolver(Protocol):
    """Maps apiVersion/kind/verb to a resource endpoint."""

    def resolve(self, api_version: str, kind: str, verb: str) -> Resolution:
        ...


def _decode(data: Any) -> Any:
    if data is None or data == b"" or data == "":
        return None
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    try:
        return json.loads(data)
    except (TypeError, ValueError):
        return data


class DynamicResourceHandle:
    """ResourceTypeHandle backed by the kubernetes dynamic client."""

    def __init__(
        self,
        client: DynamicClient,
        resource: Resource,
        verb: str,
        request_timeout: Optional[float] = None,
    ):
        """
        Initialize handle.

        Args:
            client: Dynamic client
            resource: Discovered API resource
            verb: Verb the handle was resolved for
            request_timeout: Per-request timeout in seconds
        """
        self.client = client
        self.resource = resource
        self.verb = verb
        self.request_timeout = request_timeout

    @property
    def namespaced(self) -> bool:
        """Whether objects of this type live in a namespace."""
        return bool(self.resource.namespaced)

    def uri(self, name: Optional[str], namespace: Optional[str], status: bool = False) -> str:
        """Build the canonical endpoint for an object of this type."""
        path = self.resource.path(name=name, namespace=namespace)
        if status and name:
            path = f"{path}/status"
        return path

    def _call(self, method: str, *args: Any, **kwargs: Any) -> ApiResponse:
        if self.request_timeout:
            kwargs["_request_timeout"] = self.request_timeout
        try:
            response = getattr(self.client, method)(self.resource, *args, serialize=False, **kwargs)
        except ApiException as e:
            return ApiResponse(status_code=e.status or 0, body=_decode(e.body))
        return ApiResponse(status_code=response.status, body=_decode(response.data))

    def get(self, name: str, namespace: Optional[str]) -> ApiResponse:
        """Read an object by name. Non-2xx statuses are returned, not raised."""
        return self._call("get", name=name, namespace=self._namespace(namespace))

    def post(self, doc: dict[str, Any]) -> ApiResponse:
        """Create an object. Non-2xx statuses are returned, not raised."""
        namespace = self._namespace(doc.get("metadata", {}).get("namespace"))
        return self._call("create", body=doc, namespace=namespace)

    def put(self, doc: dict[str, Any]) -> ApiResponse:
        """Replace an object. Non-2xx statuses are returned, not raised."""
        metadata = doc.get("metadata", {})
        return self._call(
            "replace",
            body=doc,
            name=metadata.get("name"),
            namespace=self._namespace(metadata.get("namespace")),
        )

    def _namespace(self, namespace: Optional[str]) -> Optional[str]:
        # Cluster scoped endpoints must not carry a namespace segment.
        return namespace if self.namespaced else None


class DynamicResourceResolver:
    """ResourceTypeResolver backed by API discovery."""

    def __init__(self, client: DynamicClient, request_timeout: Optional[float] = None):
        """
        Initialize resolver.

        Args:
            client: Dynamic client
            request_timeout: Per-request timeout passed on to handles
        """
        self.client = client
        self.request_timeout = request_timeout

    def resolve(self, api_version: str, kind: str, verb: str) -> Resolution:
        """
        Resolve a type to a fresh handle.

        Args:
            api_version: e.g. "apps/v1"
            kind: e.g. "Deployment"
            verb: "get", "post", "put" or "update"

        Returns:
            Resolved with a new handle, or Unresolved. Never raises for an
            unknown type.
        """
        if not api_version or not kind:
            return Unresolved(api_version or "", kind or "", reason="missing apiVersion or kind")

        try:
            resource = self.client.resources.get(api_version=api_version, kind=kind)
        except ResourceNotFoundError:
            return Unresolved(api_version, kind)
        except ResourceNotUniqueError:
            return Unresolved(api_version, kind, reason="ambiguous")

        k8s_verb = VERB_ALIASES.get(verb, verb)
        verbs = getattr(resource, "verbs", None)
        if verbs is not None and k8s_verb not in verbs:
            logger.debug(f"{api_version} {kind} does not support verb {k8s_verb}")
            return Unresolved(api_version, kind, reason=f"verb {k8s_verb} not supported")

        return Resolved(
            DynamicResourceHandle(self.client, resource, verb, self.request_timeout)
        )
