"""LeaseGate configuration management."""

import json
import os
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


def _default_kubernetes_api_url() -> str:
    """Build the in-cluster API origin from the service environment."""
    host = os.environ.get("KUBERNETES_SERVICE_HOST", "kubernetes.default.svc")
    port = os.environ.get("KUBERNETES_SERVICE_PORT_HTTPS", "443")
    return f"https://{host}:{port}"


class Settings(BaseSettings):
    """LeaseGate configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="LEASEGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # General
    env: Environment = Environment.DEVELOPMENT
    log_level: str = "INFO"
    debug: bool = False

    # Election
    lease_name: str = Field(default="leasegate", description="Name of the shared lease")
    election_interval_seconds: float = Field(
        default=30,
        description="Seconds between acquisition attempts and heartbeats",
    )
    retry_backoffs: list[float] = Field(
        default=[0.1, 0.5, 1, 2, 4],
        description="Backoff schedule for transient API failures",
    )
    heartbeat_max_retries: int = Field(
        default=3,
        description="Retries for a renewal before leadership is given up",
    )

    # Identity (supplied by the downward API)
    pod_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("LEASEGATE_POD_NAME", "POD_NAME"),
    )
    pod_uid: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("LEASEGATE_POD_UID", "POD_UID"),
    )
    pod_namespace: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("LEASEGATE_POD_NAMESPACE", "POD_NAMESPACE"),
    )

    # Kubernetes API
    kubernetes_api_url: str = Field(default_factory=_default_kubernetes_api_url)
    kubernetes_token_file: str = "/var/run/secrets/kubernetes.io/serviceaccount/token"
    kubernetes_ca_file: Optional[str] = "/var/run/secrets/kubernetes.io/serviceaccount/ca.crt"
    kubernetes_namespace_file: str = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"
    request_timeout_seconds: float = Field(default=10.0, description="Per-request timeout")

    # Status server
    host: str = "0.0.0.0"
    port: int = 8080
    exit_on_fatal: bool = Field(
        default=True,
        description="Terminate the process when the election task dies",
    )

    # Validators
    @field_validator("election_interval_seconds")
    @classmethod
    def validate_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"election_interval_seconds must be positive, got {v}")
        return v

    @field_validator("retry_backoffs", mode="before")
    @classmethod
    def parse_retry_backoffs(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("["):
                return json.loads(v)
            return [float(part) for part in v.split(",") if part.strip()]
        return v

    @field_validator("retry_backoffs")
    @classmethod
    def validate_retry_backoffs(cls, v: list[float]) -> list[float]:
        """Backoffs must be a non-empty list of non-negative delays."""
        if not v:
            raise ValueError("retry_backoffs must not be empty")
        if any(delay < 0 for delay in v):
            raise ValueError(f"retry_backoffs must be non-negative, got {v}")
        return v

    @field_validator("heartbeat_max_retries")
    @classmethod
    def validate_heartbeat_max_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"heartbeat_max_retries must be >= 0, got {v}")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port number range."""
        if not 1 <= v <= 65535:
            raise ValueError(f"Port must be between 1 and 65535, got {v}")
        return v

    @field_validator("kubernetes_api_url")
    @classmethod
    def validate_kubernetes_api_url(cls, v: str) -> str:
        """Validate the API URL is HTTP(S)."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"URL must start with http:// or https://, got {v}")
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_heartbeat_budget(self) -> "Settings":
        """A leader that cannot renew must give up faster than a candidate retries."""
        if self.heartbeat_max_retries >= len(self.retry_backoffs):
            raise ValueError(
                "heartbeat_max_retries must be smaller than the acquisition retry "
                f"budget ({len(self.retry_backoffs)}), got {self.heartbeat_max_retries}"
            )
        return self


settings = Settings()
