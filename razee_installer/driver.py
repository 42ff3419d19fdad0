"""Sequential, best-effort reconciliation of manifest entries."""

import asyncio
import logging
from typing import Any, Iterable, Optional

from .applier import ResourceApplier
from .decompose import decompose
from .exceptions import ApiError, NotFoundError, UnknownResourceType
from .models import (
    ApplyAction,
    ApplyOutcome,
    ApplyPolicy,
    EntryFailure,
    ManifestEntry,
    ReconcileReport,
    ResourceId,
)
from .readiness import wait_for_type
from .resolver import ResourceTypeResolver, Unresolved

logger = logging.getLogger(__name__)

# Verb each policy needs from the resolved type.
POLICY_VERBS = {
    ApplyPolicy.REPLACE: "update",
    ApplyPolicy.CREATE: "post",
}


class ReconciliationDriver:
    """
    Installs manifest entries one after another.

    Resources within an entry, and entries within a run, are applied strictly in
    order: later entries may depend on types registered by earlier ones. A failed
    resource or entry is recorded and the run continues. Cancelling the task that
    awaits `run` stops further API calls and leaves applied resources in place.
    """

    def __init__(
        self,
        resolver: ResourceTypeResolver,
        namespace: str,
        readiness_max_attempts: int = 6,
        readiness_initial_backoff_ms: int = 50,
    ):
        """
        Initialize driver.

        Args:
            resolver: Resource type resolver
            namespace: Target namespace for documents without one
            readiness_max_attempts: Resolution attempts when waiting for a type
            readiness_initial_backoff_ms: First readiness backoff in milliseconds
        """
        self.resolver = resolver
        self.namespace = namespace
        self.readiness_max_attempts = readiness_max_attempts
        self.readiness_initial_backoff_ms = readiness_initial_backoff_ms
        self.applier = ResourceApplier(namespace)
        self.report = ReconcileReport()

    async def run(self, entries: Iterable[ManifestEntry]) -> ReconcileReport:
        """
        Reconcile every entry in order.

        Args:
            entries: Ordered installation steps

        Returns:
            ReconcileReport with one ApplyOutcome per attempted resource
        """
        self.report = ReconcileReport()
        try:
            for entry in entries:
                await self.run_entry(entry)
        except asyncio.CancelledError:
            self.report.aborted = True
            logger.warning(
                f"Reconciliation aborted after {len(self.report.outcomes)} resources; "
                "applied resources are left in place"
            )
            raise
        return self.report

    async def run_entry(self, entry: ManifestEntry) -> list[ApplyOutcome]:
        """
        Reconcile one entry, recording its outcomes on the report.

        Args:
            entry: Installation step

        Returns:
            Outcomes for this entry's resources
        """
        logger.info(f"=========== Installing {entry.name} ===========")
        if entry.requires_type_ready_for is not None:
            ref = entry.requires_type_ready_for
            try:
                await wait_for_type(
                    self.resolver,
                    ref.api_version,
                    ref.kind,
                    max_attempts=self.readiness_max_attempts,
                    initial_backoff_ms=self.readiness_initial_backoff_ms,
                )
            except NotFoundError as e:
                logger.warning(f"{e}.. skipping {entry.name}")
                self._fail_entry(entry, str(e))
                return []
            except Exception as e:
                logger.error(f"Error waiting for {ref}: {e}", exc_info=True)
                self._fail_entry(entry, str(e))
                return []

        try:
            tree = await self._load(entry)
        except Exception as e:
            logger.error(f"Failed to load {entry.name}: {e}", exc_info=True)
            self._fail_entry(entry, str(e))
            return []

        outcomes = []
        for doc in decompose(tree):
            outcome = await self.apply_document(doc, entry.policy)
            self.report.outcomes.append(outcome)
            outcomes.append(outcome)
        return outcomes

    async def apply_document(self, doc: dict[str, Any], policy: ApplyPolicy) -> ApplyOutcome:
        """
        Resolve a document's type and apply it. Never raises for API failures.

        Args:
            doc: Resource document
            policy: Create/update protocol

        Returns:
            ApplyOutcome, FAILED on any resource-scoped error
        """
        resource_id = self._resource_id(doc)
        api_version = resource_id.api_version
        kind = resource_id.kind
        try:
            resolution = await asyncio.to_thread(
                self.resolver.resolve, api_version, kind, POLICY_VERBS[policy]
            )
        except Exception as e:
            logger.error(f"Error resolving {api_version} {kind}: {e}", exc_info=True)
            return self._failed(resource_id, str(e))

        if isinstance(resolution, Unresolved):
            error = UnknownResourceType(api_version, kind, resolution.reason)
            logger.error(f"Resource type not found: {resource_id} ... skipping")
            return self._failed(resource_id, str(error))

        if not resolution.handle.namespaced:
            resource_id = resource_id.model_copy(update={"namespace": None})
        try:
            return await self.applier.apply(resolution.handle, doc, policy)
        except ApiError as e:
            logger.error(f"{resource_id}: {e}")
            return self._failed(resource_id, e.message, status_code=e.status_code)
        except Exception as e:
            logger.error(f"Error applying {resource_id}: {e}", exc_info=True)
            return self._failed(resource_id, str(e))

    async def _load(self, entry: ManifestEntry) -> Any:
        if entry.loader is not None:
            return await entry.loader()
        return entry.source

    def _resource_id(self, doc: dict[str, Any]) -> ResourceId:
        resource_id = ResourceId.from_document(doc)
        if not resource_id.namespace:
            resource_id = resource_id.model_copy(update={"namespace": self.namespace})
        return resource_id

    @staticmethod
    def _failed(
        resource_id: ResourceId, detail: str, status_code: Optional[int] = None
    ) -> ApplyOutcome:
        return ApplyOutcome(
            resource_id=resource_id,
            action=ApplyAction.FAILED,
            status_code=status_code,
            error_detail=detail,
        )

    def _fail_entry(self, entry: ManifestEntry, reason: str) -> EntryFailure:
        failure = EntryFailure(name=entry.name, reason=reason)
        self.report.entry_failures.append(failure)
        return failure
