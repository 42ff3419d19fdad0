"""Tests for manifest sources."""

import httpx
import pytest

from razee_installer import ManifestSourceError, ReleaseManifestProvider, load_bundled
from razee_installer.sources import install_version_path, parse_documents

TEMPLATE = "https://github.com/razee-io/{repo}/releases/{install_version}/resource.yaml"

MANIFEST = """
apiVersion: apiextensions.k8s.io/v1
kind: CustomResourceDefinition
metadata:
  name: remoteresources.deploy.razee.io
---
apiVersion: apps/v1
kind: Deployment
metadata:
  name: remoteresource-controller
"""


def provider_for(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ReleaseManifestProvider(TEMPLATE, client=client)


class TestInstallVersionPath:
    """Test cases for release path selection."""

    @pytest.mark.parametrize(
        "version, expected",
        [
            ("0.5.1", "download/0.5.1"),
            ("latest", "latest/download"),
            ("LATEST", "latest/download"),
            (True, "latest/download"),
            (None, "latest/download"),
            ("", "latest/download"),
        ],
    )
    def test_paths(self, version, expected):
        """Test versions map to release path segments."""
        assert install_version_path(version) == expected


class TestParseDocuments:
    """Test cases for YAML parsing."""

    def test_multi_document(self):
        """Test every non-empty document is returned in order."""
        docs = parse_documents(MANIFEST + "\n---\n", "test")
        assert [d["kind"] for d in docs] == ["CustomResourceDefinition", "Deployment"]

    def test_invalid_yaml(self):
        """Test invalid YAML raises ManifestSourceError."""
        with pytest.raises(ManifestSourceError):
            parse_documents("kind: [unclosed", "test")

    def test_empty_stream(self):
        """Test an empty stream is an error, not an empty install."""
        with pytest.raises(ManifestSourceError):
            parse_documents("---\n", "test")


class TestReleaseManifestProvider:
    """Test cases for ReleaseManifestProvider."""

    @pytest.mark.asyncio
    async def test_fetch_version(self):
        """Test a concrete version is downloaded from its tag."""
        requested = []

        def handler(request):
            requested.append(str(request.url))
            return httpx.Response(200, text=MANIFEST)

        fetched = await provider_for(handler).fetch("RemoteResource", "0.5.1")

        assert fetched.uri == "https://github.com/razee-io/RemoteResource/releases/download/0.5.1/resource.yaml"
        assert requested == [fetched.uri]
        assert len(fetched.documents) == 2

    @pytest.mark.asyncio
    async def test_fallback_to_latest(self):
        """Test a failed version download falls back to latest."""
        requested = []

        def handler(request):
            requested.append(str(request.url))
            if "download/9.9.9" in str(request.url):
                return httpx.Response(404, text="Not Found")
            return httpx.Response(200, text=MANIFEST)

        fetched = await provider_for(handler).fetch("RemoteResource", "9.9.9")

        assert fetched.uri == "https://github.com/razee-io/RemoteResource/releases/latest/download/resource.yaml"
        assert len(requested) == 2

    @pytest.mark.asyncio
    async def test_latest_failure_raises(self):
        """Test a failed latest download is not retried."""
        requested = []

        def handler(request):
            requested.append(str(request.url))
            return httpx.Response(500, text="error")

        with pytest.raises(ManifestSourceError):
            await provider_for(handler).fetch("RemoteResource", "latest")

        assert len(requested) == 1

    @pytest.mark.asyncio
    async def test_empty_download_raises(self):
        """Test empty content is never returned silently."""

        def handler(request):
            return httpx.Response(200, text="")

        with pytest.raises(ManifestSourceError):
            await provider_for(handler).fetch("RemoteResource", True)


class TestBundled:
    """Test cases for packaged templates."""

    def test_prerequisites_render_namespace(self):
        """Test the prerequisites template targets the requested namespace."""
        docs = load_bundled("preReqs.yaml", "custom-ns")

        assert docs[0] == {"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": "custom-ns"}}
        assert docs[1]["kind"] == "List"
        assert docs[1]["items"][0]["metadata"]["namespace"] == "custom-ns"

    def test_auto_update_template(self):
        """Test the auto-update template is a RemoteResource."""
        docs = load_bundled("autoUpdateRR.yaml", "razeedeploy")

        assert len(docs) == 1
        assert docs[0]["kind"] == "RemoteResource"
        assert docs[0]["metadata"]["namespace"] == "razeedeploy"
