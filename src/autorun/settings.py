"""Runner settings and configuration management."""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.autorun.config import EBPF_BYPASS_MANIFEST
from src.common.paths import K6_TEMPLATE


class Settings(BaseSettings):
    """Tooling and cluster settings loaded from AUTORUN_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="AUTORUN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # External tools
    kubectl: str = Field(default="kubectl", description="kubectl executable")
    istioctl: str = Field(default="istioctl", description="istioctl executable")
    fortio: str = Field(default="fortio", description="Fortio executable")
    k6: str = Field(default="k6", description="Grafana k6 executable")

    # Cluster layout
    control_plane_namespace: str = Field(
        default="istio-system",
        description="Namespace the control plane and ingress gateway live in",
    )
    injection_label: str = Field(
        default="istio-injection",
        description="Namespace label that enables sidecar auto-injection",
    )

    # Readiness polling
    poll_interval: float = Field(
        default=1.0, gt=0, description="Seconds between pod readiness snapshots"
    )
    readiness_timeout: Optional[float] = Field(
        default=900.0,
        ge=0,
        description="Seconds to wait for all pods to be ready (0 or unset: wait forever)",
    )
    pod_source: Literal["kubectl", "api"] = Field(
        default="kubectl",
        description="Take pod snapshots with kubectl or the Kubernetes API client",
    )
    kubeconfig: Optional[Path] = Field(
        default=None, description="Kubeconfig used by the API pod source"
    )

    # Load testing
    k6_template: Path = Field(
        default=K6_TEMPLATE, description="k6 script template with a <URL> placeholder"
    )

    # Optional eBPF TCP/IP bypass
    ebpf_bypass_manifest: str = Field(
        default=EBPF_BYPASS_MANIFEST,
        description="Bypass daemonset manifest, used when no local copy exists",
    )

    # Command execution
    command_timeout: Optional[float] = Field(
        default=None, gt=0, description="Timeout in seconds for each external command"
    )

    # Reports and logging
    results_dir: Optional[Path] = Field(
        default=None, description="Directory for JSON run reports (unset: no report file)"
    )
    log_level: str = Field(default="INFO", description="Python logging level")


