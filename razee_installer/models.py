"""Data models for manifest reconciliation."""

from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApplyAction(str, Enum):
    """Result of applying a single resource."""

    CREATED = "created"
    UPDATED = "updated"
    ALREADY_SKIPPED = "already_skipped"
    FAILED = "failed"


class ApplyPolicy(str, Enum):
    """Create/update protocol used for a manifest entry."""

    REPLACE = "replace"  # GET, then PUT with live resourceVersion or POST
    CREATE = "create"  # POST, tolerate 409 AlreadyExists


class TypeRef(BaseModel):
    """An apiVersion/kind pair."""

    model_config = ConfigDict(frozen=True)

    api_version: str
    kind: str

    def __str__(self) -> str:
        return f"{self.api_version} {self.kind}"


def _text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


class ResourceId(BaseModel):
    """Identity of a resource document."""

    model_config = ConfigDict(frozen=True)

    kind: str = ""
    api_version: str = ""
    namespace: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "ResourceId":
        """
        Build an identity from a manifest or live document.

        Never raises: scalar fields are coerced to strings (YAML reads `name: 2024`
        as an int) and a malformed metadata block is ignored.
        """
        metadata = doc.get("metadata")
        if not isinstance(metadata, dict):
            metadata = {}
        return cls(
            kind=_text(doc.get("kind")) or "",
            api_version=_text(doc.get("apiVersion")) or "",
            namespace=_text(metadata.get("namespace")),
            name=_text(metadata.get("name")),
        )

    def __str__(self) -> str:
        return (
            f"{{ kind: {self.kind}, apiVersion: {self.api_version}, "
            f"name: {self.name}, namespace: {self.namespace} }}"
        )


class ApiResponse(BaseModel):
    """Status code and decoded body of an API server call."""

    status_code: int
    body: Any = None

    @property
    def reason(self) -> Optional[str]:
        """The `reason` field of a Status body, if any."""
        if isinstance(self.body, dict):
            return self.body.get("reason")
        return None

    @property
    def message(self) -> str:
        """The `message` field of a Status body, falling back to the raw body."""
        if isinstance(self.body, dict) and self.body.get("message"):
            return str(self.body["message"])
        return str(self.body)


class ApplyOutcome(BaseModel):
    """Outcome of applying one resource document."""

    model_config = ConfigDict(frozen=True)

    resource_id: ResourceId
    action: ApplyAction
    status_code: Optional[int] = None
    error_detail: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.action != ApplyAction.FAILED


class ManifestEntry(BaseModel):
    """
    One installation step.

    Either `source` holds an already parsed manifest tree, or `loader` is awaited
    to produce one when the step runs.
    """

    name: str
    policy: ApplyPolicy = ApplyPolicy.REPLACE
    source: Any = None
    loader: Optional[Callable[[], Awaitable[Any]]] = None
    requires_type_ready_for: Optional[TypeRef] = None


class EntryFailure(BaseModel):
    """A manifest entry whose resources were never attempted."""

    name: str
    reason: str


class ReconcileReport(BaseModel):
    """Aggregated result of a reconciliation run."""

    outcomes: list[ApplyOutcome] = Field(default_factory=list)
    entry_failures: list[EntryFailure] = Field(default_factory=list)
    aborted: bool = False

    @property
    def failed(self) -> list[ApplyOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def succeeded(self) -> bool:
        return not self.aborted and not self.failed and not self.entry_failures

    def count(self, action: ApplyAction) -> int:
        """Count outcomes with the given action."""
        return sum(1 for o in self.outcomes if o.action == action)
