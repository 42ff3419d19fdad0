"""Kubernetes client connection for the installer."""

import logging
from typing import Optional

from kubernetes import config
from kubernetes.client import ApiClient
from kubernetes.config.config_exception import ConfigException
from kubernetes.dynamic import DynamicClient

from .resolver import DynamicResourceResolver

logger = logging.getLogger(__name__)


class ClusterConnection:
    """Represents a connection to a single Kubernetes cluster."""

    def __init__(
        self,
        kubeconfig_path: Optional[str] = None,
        context: Optional[str] = None,
        request_timeout: Optional[float] = None,
    ):
        """
        Initialize cluster connection.

        Args:
            kubeconfig_path: Explicit kubeconfig file
            context: Specific context to use
            request_timeout: Per-request timeout in seconds

        Raises:
            ValueError: If no usable configuration is found
        """
        self.kubeconfig_path = kubeconfig_path
        self.context = context
        self.request_timeout = request_timeout
        self._api_client: Optional[ApiClient] = None
        self._dynamic: Optional[DynamicClient] = None

        self._initialize_client()

    def _initialize_client(self):
        """Initialize Kubernetes API client."""
        try:
            if self.kubeconfig_path:
                config.load_kube_config(config_file=self.kubeconfig_path, context=self.context)
            else:
                try:
                    config.load_incluster_config()
                    logger.debug("Using in-cluster configuration")
                except ConfigException:
                    config.load_kube_config(context=self.context)

            self._api_client = ApiClient()
            self._dynamic = DynamicClient(self._api_client)

        except Exception as e:
            raise ValueError(f"Failed to initialize cluster connection: {e}") from e

    @property
    def dynamic(self) -> DynamicClient:
        """Get DynamicClient instance."""
        if not self._dynamic:
            raise RuntimeError("Cluster connection not initialized")
        return self._dynamic

    def resolver(self) -> DynamicResourceResolver:
        """Build a resource type resolver on this connection."""
        return DynamicResourceResolver(self.dynamic, request_timeout=self.request_timeout)

    def close(self):
        """Close the cluster connection."""
        if self._api_client:
            self._api_client.close()
            self._api_client = None
        self._dynamic = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
