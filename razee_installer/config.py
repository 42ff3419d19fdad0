"""Configuration for the razeedeploy installer."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import ApplyPolicy


class Settings(BaseSettings):
    """Installer settings."""

    model_config = SettingsConfigDict(
        env_prefix="RAZEEDEPLOY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    namespace: str = "razeedeploy"
    log_level: str = "INFO"

    # Cluster Settings
    kubeconfig_path: Optional[str] = None
    kube_context: Optional[str] = None
    request_timeout_seconds: float = 30.0

    # Readiness Settings
    readiness_max_attempts: int = Field(default=6, ge=1)
    readiness_initial_backoff_ms: int = Field(default=50, ge=0)

    # Apply Settings
    prerequisites_policy: ApplyPolicy = ApplyPolicy.CREATE
    component_policy: ApplyPolicy = ApplyPolicy.REPLACE

    # Release Settings
    release_url_template: str = Field(
        default="https://github.com/razee-io/{repo}/releases/{install_version}/resource.yaml",
        description="Release asset URL; {install_version} is 'download/<tag>' or 'latest/download'",
    )
    download_timeout_seconds: float = 30.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
