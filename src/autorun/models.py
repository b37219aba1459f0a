"""Pydantic models for the run configuration and the values passed between steps."""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple

import psutil
from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.autorun.config import DEFAULT_WORKLOAD, FORTIO_CONNECTIONS_PER_CPU


def default_connections() -> int:
    """Fortio connection count used when none is given: 4 per logical CPU."""
    return FORTIO_CONNECTIONS_PER_CPU * (psutil.cpu_count(logical=True) or 1)


class ResourceRef(BaseModel):
    """One deployable manifest, either a local path or a remote URI."""

    model_config = ConfigDict(frozen=True)

    location: str = Field(min_length=1, description="Manifest path or URI")
    namespaced: bool = Field(
        default=True, description="Apply and delete inside the workload namespace"
    )

    @property
    def is_remote(self) -> bool:
        return self.location.startswith(("http://", "https://"))

    def __str__(self) -> str:
        return self.location


class DeploymentStack:
    """Resources applied so far, in application order.

    Append-only while deploying. Once draining starts the stack is frozen and
    only walked from the last resource to the first.
    """

    def __init__(self) -> None:
        self._refs: List[ResourceRef] = []
        self._draining = False

    def push(self, ref: ResourceRef) -> None:
        if self._draining:
            raise RuntimeError("cannot push onto a deployment stack that is being drained")
        self._refs.append(ref)

    def drain(self) -> Iterator[ResourceRef]:
        self._draining = True
        return reversed(tuple(self._refs))

    @property
    def draining(self) -> bool:
        return self._draining

    def __iter__(self) -> Iterator[ResourceRef]:
        return iter(tuple(self._refs))

    def __len__(self) -> int:
        return len(self._refs)


class IngressEndpoint(BaseModel):
    """Externally reachable address of the ingress gateway."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(description="Load balancer IP or node host IP")
    plain_port: str = Field(description="Port for plain HTTP traffic")
    secure_port: str = Field(default="", description="Port for HTTPS traffic")

    def urls(self) -> Tuple[str, str]:
        return (
            f"http://{self.host}:{self.plain_port}",
            f"https://{self.host}:{self.secure_port}",
        )


class PodReadiness(BaseModel):
    """Readiness of a single pod at snapshot time."""

    model_config = ConfigDict(frozen=True)

    name: str
    ready_containers: int = Field(ge=0)
    total_containers: int = Field(ge=0)
    phase: str

    @property
    def is_ready(self) -> bool:
        return self.ready_containers == self.total_containers and self.phase == "Running"

    def __str__(self) -> str:
        return f"{self.name} {self.ready_containers}/{self.total_containers} {self.phase}"


class ReadinessSnapshot(BaseModel):
    """Every pod in the namespace as seen by one poll."""

    model_config = ConfigDict(frozen=True)

    pods: Tuple[PodReadiness, ...] = ()

    @property
    def all_ready(self) -> bool:
        # An empty namespace has nothing serving yet
        return bool(self.pods) and all(pod.is_ready for pod in self.pods)

    @property
    def not_ready(self) -> List[PodReadiness]:
        return [pod for pod in self.pods if not pod.is_ready]


class RunConfiguration(BaseModel):
    """Operator-supplied knobs for one run, built once from the command line."""

    model_config = ConfigDict(frozen=True)

    config_path: Optional[Path] = Field(
        default=None, description="Control-plane configuration file (overrides profile)"
    )
    profile: str = Field(default="default", description="Control-plane install profile")
    namespace: str = Field(
        default="default",
        description="Namespace labelled for sidecar injection and polled for readiness",
        pattern="^[a-z0-9]([-a-z0-9]*[a-z0-9])?$",
    )
    secure: bool = Field(default=False, description="Use https for the target URL")
    match_path: str = Field(default="", description="Path appended to the ingress address")
    connections: int = Field(
        default_factory=default_connections, ge=0, description="Fortio connections (0: skip)"
    )
    fortio_params: str = Field(default="", description="Extra Fortio parameters")
    vus: int = Field(default=0, ge=0, description="k6 virtual users (0: skip)")
    k6_params: str = Field(default="", description="Extra k6 parameters")
    keep_resources: bool = Field(default=False, description="Leave everything installed")
    resources: Tuple[ResourceRef, ...] = Field(
        default_factory=lambda: tuple(ResourceRef(location=uri) for uri in DEFAULT_WORKLOAD),
        min_length=1,
        description="Workload manifests in application order",
    )
    ebpf_bypass: bool = Field(default=False, description="Deploy the eBPF TCP/IP bypass")
    readiness_timeout: Optional[float] = Field(
        default=None, gt=0, description="Readiness bound in seconds (None: wait forever)"
    )

    @field_validator("config_path", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Any:
        """Expand ~ in paths."""
        if isinstance(v, str):
            return Path(v).expanduser() if v else None
        return v

    @field_validator("resources", mode="before")
    @classmethod
    def coerce_resources(cls, v: Any) -> Any:
        """Accept bare locations alongside ResourceRef instances."""
        if isinstance(v, (list, tuple)):
            return tuple(ResourceRef(location=r) if isinstance(r, str) else r for r in v)
        return v


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command."""

    argv: Tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return self.stdout.strip()

    def describe(self) -> str:
        detail = self.stderr.strip() or self.stdout.strip()
        summary = f"'{' '.join(self.argv)}' exited with code {self.returncode}"
        return f"{summary}: {detail}" if detail else summary


class LoadTestResult(BaseModel):
    """One load backend invocation."""

    backend: str = Field(description="Backend name (fortio, k6)")
    level: int = Field(ge=0, description="Connections or virtual users")
    returncode: int = Field(description="Backend exit status")

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class RunReport(BaseModel):
    """What a run did, written out at the end."""

    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    namespace: str
    applied: List[str] = Field(default_factory=list, description="Resources applied, in order")
    deleted: List[str] = Field(default_factory=list, description="Resources deleted, in order")
    readiness_polls: int = Field(default=0, ge=0)
    endpoint: Optional[IngressEndpoint] = None
    target_url: Optional[str] = None
    load_results: List[LoadTestResult] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    kept: bool = False
    exit_code: int = 0

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()
