"""razeedeploy component catalog and install plan."""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from .config import Settings
from .models import ApplyPolicy, ManifestEntry, TypeRef
from .sources import LATEST, ReleaseManifestProvider, load_bundled

logger = logging.getLogger(__name__)

PREREQUISITES_TEMPLATE = "preReqs.yaml"
AUTO_UPDATE_TEMPLATE = "autoUpdateRR.yaml"
REMOTE_RESOURCE_TYPE = TypeRef(api_version="deploy.razee.io/v1alpha2", kind="RemoteResource")

RequestedVersion = Union[str, bool, None]


@dataclass(frozen=True)
class Component:
    """An installable razeedeploy component."""

    name: str
    repo: str
    flag: str


COMPONENTS: tuple[Component, ...] = (
    Component("watch-keeper", "watch-keeper", "wk"),
    Component("remoteresource", "RemoteResource", "rr"),
    Component("remoteresources3", "RemoteResourceS3", "rrs3"),
    Component("remoteresources3decrypt", "RemoteResourceS3Decrypt", "rrs3d"),
    Component("mustachetemplate", "MustacheTemplate", "mtp"),
    Component("featureflagsetld", "FeatureFlagSetLD", "ffsld"),
    Component("managedset", "ManagedSet", "ms"),
)


def select_components(requested: dict[str, RequestedVersion]) -> list[tuple[Component, RequestedVersion]]:
    """
    Pick components to install.

    Every component is installed at latest when none was requested.

    Args:
        requested: Component name to requested version (tag, "latest", True) or None

    Returns:
        (component, version) pairs in catalog order
    """
    if all(requested.get(c.name) is None for c in COMPONENTS):
        return [(c, LATEST) for c in COMPONENTS]
    return [(c, requested[c.name]) for c in COMPONENTS if requested.get(c.name)]


def _component_loader(provider: ReleaseManifestProvider, component: Component, version: RequestedVersion):
    async def load() -> list[Any]:
        fetched = await provider.fetch(component.repo, version)
        logger.info(f"Loaded {len(fetched.documents)} documents for {component.name} from {fetched.uri}")
        return fetched.documents

    return load


def _auto_update_loader(namespace: str, urls: list[str]):
    async def load() -> list[Any]:
        documents = load_bundled(AUTO_UPDATE_TEMPLATE, namespace)
        for doc in documents:
            doc.setdefault("spec", {})["requests"] = [{"options": {"url": url}} for url in urls]
        return documents

    return load


def build_install_plan(
    settings: Settings,
    requested: dict[str, RequestedVersion],
    provider: ReleaseManifestProvider,
    auto_update: bool = False,
    namespace: Optional[str] = None,
) -> list[ManifestEntry]:
    """
    Build the ordered installation steps.

    Args:
        settings: Installer settings
        requested: Component name to requested version
        provider: Release manifest provider
        auto_update: Also install a RemoteResource that keeps components at latest
        namespace: Target namespace, defaults to settings.namespace

    Returns:
        Prerequisites, then selected components, then the optional auto-update entry
    """
    namespace = namespace or settings.namespace
    entries = [
        ManifestEntry(
            name="Prerequisites",
            policy=settings.prerequisites_policy,
            source=load_bundled(PREREQUISITES_TEMPLATE, namespace),
        )
    ]

    selected = select_components(requested)
    for component, version in selected:
        label = version if isinstance(version, str) else LATEST
        entries.append(
            ManifestEntry(
                name=f"{component.name}:{label}",
                policy=settings.component_policy,
                loader=_component_loader(provider, component, version),
            )
        )

    if auto_update:
        installed = {component.name for component, _ in selected}
        if "remoteresource" not in installed:
            # The auto-update object is itself a RemoteResource.
            logger.warning(
                "RemoteResource CRD must be one of the installed resources in order to use "
                "autoUpdate (eg. --rr).. Skipping autoUpdate"
            )
        else:
            urls = [provider.uri(component.repo, LATEST) for component, _ in selected]
            entries.append(
                ManifestEntry(
                    name="Auto-Update RemoteResource",
                    policy=ApplyPolicy.REPLACE,
                    loader=_auto_update_loader(namespace, urls),
                    requires_type_ready_for=REMOTE_RESOURCE_TYPE,
                )
            )

    return entries
