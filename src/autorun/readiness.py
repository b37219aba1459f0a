"""Gang readiness: wait until one snapshot shows every pod serving.

Pods only count when all of their containers, sidecar proxies included,
are ready and the pod is Running. Each poll looks at the whole namespace
afresh; nothing learned from an earlier poll is kept.
"""

import json
import logging
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from kubernetes import client, config as k8s_config
from kubernetes.client.rest import ApiException

from src.autorun.exceptions import PreflightError, ReadinessTimeout
from src.autorun.models import PodReadiness, ReadinessSnapshot
from src.autorun.runner import CommandRunner
from src.autorun.settings import Settings

logger = logging.getLogger(__name__)

SIDECAR_RESTART_POLICY = "Always"


class SnapshotError(Exception):
    """A pod listing could not be taken; the poll counts as not ready."""


class PodLister(Protocol):
    def snapshot(self, namespace: str) -> ReadinessSnapshot: ...


def _phase(phase: Optional[str], deleting: bool) -> str:
    # kubectl shows pods being deleted as Terminating whatever their phase
    if deleting:
        return "Terminating"
    return phase or "Unknown"


def pod_from_manifest(pod: Dict[str, Any]) -> PodReadiness:
    """Build a PodReadiness from a pod object as returned by `kubectl -o json`.

    Init containers with `restartPolicy: Always` are native sidecars and
    count like regular containers, as in kubectl's READY column.
    """
    metadata = pod.get("metadata") or {}
    spec = pod.get("spec") or {}
    status = pod.get("status") or {}
    sidecars = {
        c.get("name")
        for c in spec.get("initContainers") or []
        if c.get("restartPolicy") == SIDECAR_RESTART_POLICY
    }
    statuses = list(status.get("containerStatuses") or [])
    statuses += [s for s in status.get("initContainerStatuses") or [] if s.get("name") in sidecars]
    return PodReadiness(
        name=metadata.get("name", ""),
        ready_containers=sum(1 for c in statuses if c.get("ready")),
        total_containers=len(spec.get("containers") or []) + len(sidecars),
        phase=_phase(status.get("phase"), bool(metadata.get("deletionTimestamp"))),
    )


class KubectlPodLister:
    """Snapshots pods with `kubectl get pods -o json`."""

    def __init__(self, runner: CommandRunner, settings: Settings):
        self.runner = runner
        self.kubectl = settings.kubectl

    def snapshot(self, namespace: str) -> ReadinessSnapshot:
        result = self.runner.run([self.kubectl, "get", "pods", "-n", namespace, "-o", "json"])
        if not result.ok:
            raise SnapshotError(result.describe())
        try:
            items = json.loads(result.stdout).get("items") or []
        except json.JSONDecodeError as e:
            raise SnapshotError(f"unparseable pod list: {e}") from e
        return ReadinessSnapshot(pods=tuple(pod_from_manifest(item) for item in items))


class KubernetesPodLister:
    """Snapshots pods through the Kubernetes API."""

    def __init__(self, core_api: Optional[Any] = None, settings: Optional[Settings] = None):
        if core_api is None:
            kubeconfig = settings.kubeconfig if settings else None
            k8s_config.load_kube_config(config_file=str(kubeconfig) if kubeconfig else None)
            core_api = client.CoreV1Api()
        self.core = core_api

    def snapshot(self, namespace: str) -> ReadinessSnapshot:
        try:
            pods = self.core.list_namespaced_pod(namespace=namespace)
        except ApiException as e:
            raise SnapshotError(f"listing pods failed: {e.status} {e.reason}") from e

        readiness = []
        for pod in pods.items:
            sidecars = {
                c.name
                for c in pod.spec.init_containers or []
                if c.restart_policy == SIDECAR_RESTART_POLICY
            }
            statuses = list(pod.status.container_statuses or [])
            statuses += [s for s in pod.status.init_container_statuses or [] if s.name in sidecars]
            readiness.append(
                PodReadiness(
                    name=pod.metadata.name,
                    ready_containers=sum(1 for c in statuses if c.ready),
                    total_containers=len(pod.spec.containers or []) + len(sidecars),
                    phase=_phase(pod.status.phase, pod.metadata.deletion_timestamp is not None),
                )
            )
        return ReadinessSnapshot(pods=tuple(readiness))


def make_pod_lister(runner: CommandRunner, settings: Settings) -> PodLister:
    if settings.pod_source == "api":
        try:
            return KubernetesPodLister(settings=settings)
        except k8s_config.ConfigException as e:
            raise PreflightError(f"cannot load kubeconfig: {e}") from e
    return KubectlPodLister(runner, settings)


class GateState(str, Enum):
    """Readiness gate states."""

    WAITING = "waiting"
    READY = "ready"


class ReadinessGate:
    """Blocks until a single pod snapshot is ready across the board."""

    def __init__(
        self,
        lister: PodLister,
        interval: float = 1.0,
        timeout: Optional[float] = None,
    ):
        self.lister = lister
        self.interval = interval
        self.timeout = timeout
        self.state = GateState.WAITING
        self.polls = 0
        self._last_not_ready: List[str] = []

    def poll(self, namespace: str) -> bool:
        """Take one snapshot and move to READY if every pod in it is ready."""
        self.polls += 1
        try:
            snapshot = self.lister.snapshot(namespace)
        except SnapshotError as e:
            logger.warning("Pod snapshot failed, retrying: %s", e)
            self._last_not_ready = ["<snapshot unavailable>"]
            return False

        if snapshot.all_ready:
            self.state = GateState.READY
            return True

        self._last_not_ready = [str(pod) for pod in snapshot.not_ready] or ["<no pods>"]
        logger.debug("Poll %d: not ready: %s", self.polls, ", ".join(self._last_not_ready))
        return False

    def wait(self, namespace: str) -> int:
        """Poll every interval until READY.

        Returns:
            Number of polls it took

        Raises:
            ReadinessTimeout: the timeout elapsed with pods still not ready
        """
        if self.state is GateState.READY:
            return self.polls

        print(f"Waiting until all pods in '{namespace}' are ready and Running ...")
        self._last_not_ready = []
        started = time.monotonic()
        while True:
            time.sleep(self.interval)
            if self.poll(namespace):
                logger.info("All pods in '%s' ready after %d polls", namespace, self.polls)
                return self.polls
            if self.timeout is not None and time.monotonic() - started >= self.timeout:
                raise ReadinessTimeout(
                    f"pods in '{namespace}' not ready after {self.timeout:g}s: "
                    + ", ".join(self._last_not_ready)
                )
