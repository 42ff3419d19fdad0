"""razeedeploy installer - idempotent manifest reconciliation."""

from .applier import ResourceApplier
from .cluster import ClusterConnection
from .config import Settings, get_settings
from .decompose import NodeShape, classify, decompose
from .driver import ReconciliationDriver
from .exceptions import (
    ApiError,
    InstallerError,
    ManifestSourceError,
    NotFoundError,
    UnknownResourceType,
)
from .install import COMPONENTS, Component, build_install_plan
from .models import (
    ApiResponse,
    ApplyAction,
    ApplyOutcome,
    ApplyPolicy,
    EntryFailure,
    ManifestEntry,
    ReconcileReport,
    ResourceId,
    TypeRef,
)
from .readiness import wait_for_type
from .resolver import (
    DynamicResourceHandle,
    DynamicResourceResolver,
    Resolution,
    Resolved,
    ResourceTypeHandle,
    ResourceTypeResolver,
    Unresolved,
)
from .sources import FetchedManifest, ReleaseManifestProvider, load_bundled

__version__ = "0.1.0"

__all__ = [
    # Reconciliation
    "ReconciliationDriver",
    "ResourceApplier",
    "decompose",
    "classify",
    "NodeShape",
    "wait_for_type",
    # Cluster access
    "ClusterConnection",
    "DynamicResourceResolver",
    "DynamicResourceHandle",
    "ResourceTypeResolver",
    "ResourceTypeHandle",
    "Resolution",
    "Resolved",
    "Unresolved",
    # Manifest sources
    "ReleaseManifestProvider",
    "FetchedManifest",
    "load_bundled",
    "COMPONENTS",
    "Component",
    "build_install_plan",
    # Configuration
    "Settings",
    "get_settings",
    # Models
    "ApiResponse",
    "ApplyAction",
    "ApplyOutcome",
    "ApplyPolicy",
    "EntryFailure",
    "ManifestEntry",
    "ReconcileReport",
    "ResourceId",
    "TypeRef",
    # Errors
    "InstallerError",
    "ApiError",
    "UnknownResourceType",
    "NotFoundError",
    "ManifestSourceError",
]
