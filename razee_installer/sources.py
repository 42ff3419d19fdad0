"""Fetch and parse manifest sources."""

import logging
from dataclasses import dataclass
from importlib import resources
from string import Template
from typing import Any, Optional, Union

import httpx
import yaml

from .exceptions import ManifestSourceError

logger = logging.getLogger(__name__)

LATEST = "latest"
LATEST_PATH = "latest/download"


@dataclass
class FetchedManifest:
    """Parsed documents and the URI that served them."""

    uri: str
    documents: list[Any]


def install_version_path(version: Union[str, bool, None]) -> str:
    """
    Map a requested version to its release path segment.

    A concrete tag maps to "download/<tag>"; "latest", a bare flag or nothing maps
    to "latest/download".
    """
    if isinstance(version, str) and version and version.lower() != LATEST:
        return f"download/{version}"
    return LATEST_PATH


def parse_documents(text: str, uri: str) -> list[Any]:
    """
    Parse a multi-document YAML stream.

    Raises:
        ManifestSourceError: If the stream is invalid or holds no documents
    """
    try:
        documents = [doc for doc in yaml.safe_load_all(text) if doc is not None]
    except yaml.YAMLError as e:
        raise ManifestSourceError(uri, f"invalid YAML: {e}") from e
    if not documents:
        raise ManifestSourceError(uri, "no documents")
    return documents


class ReleaseManifestProvider:
    """Downloads component manifests from release assets."""

    def __init__(
        self,
        url_template: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize provider.

        Args:
            url_template: URL with {repo} and {install_version} placeholders
            timeout: Download timeout in seconds
            client: Optional shared HTTP client
        """
        self.url_template = url_template
        self.timeout = timeout
        self._client = client

    def uri(self, repo: str, version: Union[str, bool, None] = LATEST) -> str:
        """Build the release asset URI for a repository and version."""
        return self.url_template.format(repo=repo, install_version=install_version_path(version))

    async def fetch(self, repo: str, version: Union[str, bool, None] = LATEST) -> FetchedManifest:
        """
        Download and parse a component manifest.

        A failed download of a concrete version falls back to the latest release.

        Args:
            repo: Release repository name
            version: Tag, "latest", or True for latest

        Returns:
            FetchedManifest with the URI that actually served the content

        Raises:
            ManifestSourceError: If neither download yields parseable content
        """
        uri = self.uri(repo, version)
        latest_uri = self.uri(repo, LATEST)
        try:
            logger.info(f"Downloading {uri}")
            text = await self._download(uri)
        except ManifestSourceError:
            if uri == latest_uri:
                raise
            logger.warning(f"Failed to download {uri}.. defaulting to {latest_uri}")
            uri = latest_uri
            text = await self._download(uri)

        return FetchedManifest(uri=uri, documents=parse_documents(text, uri))

    async def _download(self, uri: str) -> str:
        try:
            if self._client is not None:
                response = await self._client.get(uri, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(uri, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ManifestSourceError(uri, str(e)) from e

        if not response.text.strip():
            raise ManifestSourceError(uri, "empty response")
        return response.text


def render_bundled(name: str, **values: str) -> str:
    """
    Render a packaged manifest template.

    Args:
        name: File name under razee_installer/resources
        values: ${placeholder} substitutions

    Returns:
        Rendered YAML text
    """
    template = resources.files("razee_installer").joinpath("resources").joinpath(name)
    text = template.read_text(encoding="utf-8")
    return Template(text).substitute(**values)


def load_bundled(name: str, namespace: str) -> list[Any]:
    """Render a packaged template for a namespace and parse its documents."""
    return parse_documents(render_bundled(name, desired_namespace=namespace), f"package:{name}")
