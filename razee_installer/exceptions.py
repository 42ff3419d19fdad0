"""Installer exception hierarchy."""

from typing import Any, Optional


class InstallerError(Exception):
    """Base class for installer errors."""


class ApiError(InstallerError):
    """Unexpected status code returned by the API server."""

    def __init__(self, status_code: int, body: Any = None):
        self.status_code = status_code
        self.body = body
        super().__init__(f"API error {status_code}: {self.message}")

    @property
    def message(self) -> str:
        """Server-provided message, falling back to the raw body."""
        if isinstance(self.body, dict):
            return str(self.body.get("message") or self.body.get("reason") or self.body)
        return str(self.body)


class UnknownResourceType(InstallerError):
    """The resolver has no endpoint for an apiVersion/kind pair."""

    def __init__(self, api_version: str, kind: str, reason: Optional[str] = None):
        self.api_version = api_version
        self.kind = kind
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Unknown resource type {api_version} {kind}{detail}")


class NotFoundError(InstallerError):
    """A resource type never became resolvable within the retry budget."""

    def __init__(self, api_version: str, kind: str, attempts: int):
        self.api_version = api_version
        self.kind = kind
        self.attempts = attempts
        super().__init__(f"Failed to find {api_version} {kind} after {attempts} attempts")


class ManifestSourceError(InstallerError):
    """Manifest content could not be fetched or parsed."""

    def __init__(self, uri: str, reason: str):
        self.uri = uri
        self.reason = reason
        super().__init__(f"Failed to load manifest from {uri}: {reason}")
