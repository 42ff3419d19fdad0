"""Create-or-update protocols for single resource documents."""

import asyncio
import copy
import logging
from typing import Any, Optional

from .exceptions import ApiError
from .models import ApiResponse, ApplyAction, ApplyOutcome, ApplyPolicy, ResourceId
from .resolver import ResourceTypeHandle

logger = logging.getLogger(__name__)

GET_OK = 200
GET_MISSING = 404
PUT_OK = (200, 201)
POST_OK = (200, 201, 202)
CONFLICT = 409


def with_namespace(doc: dict[str, Any], namespace: Optional[str]) -> dict[str, Any]:
    """
    Copy a document, defaulting metadata.namespace.

    Args:
        doc: Manifest-origin resource document
        namespace: Namespace used when the document has none, or None for a
            cluster scoped type, whose documents never carry one

    Returns:
        A deep copy safe to mutate
    """
    doc = copy.deepcopy(doc)
    metadata = doc.setdefault("metadata", {})
    if namespace is None:
        metadata.pop("namespace", None)
    elif not metadata.get("namespace"):
        metadata["namespace"] = namespace
    return doc


class ResourceApplier:
    """Applies resource documents through resolved type handles."""

    def __init__(self, namespace: str):
        """
        Initialize applier.

        Args:
            namespace: Target namespace for documents without one
        """
        self.namespace = namespace

    async def apply(
        self, handle: ResourceTypeHandle, doc: dict[str, Any], policy: ApplyPolicy
    ) -> ApplyOutcome:
        """
        Apply a document with the given policy.

        Args:
            handle: Handle resolved for the document's type
            doc: Resource document
            policy: Create/update protocol

        Returns:
            ApplyOutcome

        Raises:
            ApiError: Under the replace policy, for statuses outside the expected set
        """
        if policy == ApplyPolicy.REPLACE:
            return await self.replace(handle, doc)
        return await self.create(handle, doc)

    async def replace(self, handle: ResourceTypeHandle, doc: dict[str, Any]) -> ApplyOutcome:
        """
        Upsert a document, attaching the live resourceVersion before writing.

        A 409 from the write is not retried.

        Raises:
            ApiError: If GET returns neither 200 nor 404, PUT neither 200 nor 201,
                or POST none of 200, 201, 202
        """
        doc = self._scoped(handle, doc)
        metadata = doc["metadata"]
        name = metadata.get("name")
        namespace = metadata.get("namespace")
        uri = handle.uri(name, namespace)
        logger.info(f"Replace {uri}")

        logger.info(f"- Get {uri}")
        get = await asyncio.to_thread(handle.get, name, namespace)
        live_metadata = None
        if get.status_code == GET_OK:
            body = get.body if isinstance(get.body, dict) else {}
            live_metadata = body.get("metadata") or {}
            logger.info(
                f"- Get {get.status_code} {uri}: resourceVersion {live_metadata.get('resourceVersion')}"
            )
        elif get.status_code == GET_MISSING:
            logger.info(f"- Get {get.status_code} {uri}")
        else:
            logger.info(f"- Get {get.status_code} {uri}")
            raise ApiError(get.status_code, get.body)

        if live_metadata is not None:
            metadata["resourceVersion"] = live_metadata.get("resourceVersion")
            logger.info(f"- Put {uri}")
            put = await asyncio.to_thread(handle.put, doc)
            logger.info(f"- Put {put.status_code} {uri}")
            if put.status_code not in PUT_OK:
                raise ApiError(put.status_code, put.body)
            return self._outcome(doc, ApplyAction.UPDATED, put)

        # A manifest may carry a stale resourceVersion; creates must not.
        metadata.pop("resourceVersion", None)
        logger.info(f"- Post {uri}")
        post = await asyncio.to_thread(handle.post, doc)
        logger.info(f"- Post {post.status_code} {uri}")
        if post.status_code not in POST_OK:
            raise ApiError(post.status_code, post.body)
        return self._outcome(doc, ApplyAction.CREATED, post)

    async def create(self, handle: ResourceTypeHandle, doc: dict[str, Any]) -> ApplyOutcome:
        """
        Create a document, treating 409 AlreadyExists as a skip.

        Never raises for API statuses; other failures are returned as FAILED.
        """
        doc = self._scoped(handle, doc)
        metadata = doc["metadata"]
        uri = handle.uri(metadata.get("name"), metadata.get("namespace"))

        logger.info(f"- Post {uri}")
        post = await asyncio.to_thread(handle.post, doc)
        logger.info(f"- Post {post.status_code} {uri}")

        if post.status_code in POST_OK:
            return self._outcome(doc, ApplyAction.CREATED, post)
        if post.status_code == CONFLICT and post.reason == "AlreadyExists":
            logger.info(f"{uri} already exists.. skipping")
            return self._outcome(doc, ApplyAction.ALREADY_SKIPPED, post)

        logger.error(f"Failed to create {uri}: {post.status_code} {post.message}")
        return self._outcome(doc, ApplyAction.FAILED, post, error_detail=post.message)

    def _scoped(self, handle: ResourceTypeHandle, doc: dict[str, Any]) -> dict[str, Any]:
        return with_namespace(doc, self.namespace if handle.namespaced else None)

    @staticmethod
    def _outcome(
        doc: dict[str, Any],
        action: ApplyAction,
        response: ApiResponse,
        error_detail: Optional[str] = None,
    ) -> ApplyOutcome:
        return ApplyOutcome(
            resource_id=ResourceId.from_document(doc),
            action=action,
            status_code=response.status_code,
            error_detail=error_detail,
        )
