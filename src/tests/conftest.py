"""Pytest configuration and shared fixtures for the istio-autorun tests."""

import json
import time
from typing import Any, Callable, Dict, List, Optional, Sequence
from unittest.mock import MagicMock

import pytest

from src.autorun.models import CommandResult, RunConfiguration
from src.autorun.settings import Settings


class FakeRunner:
    """Stands in for CommandRunner: records every command, replays scripted results.

    ``script(fragment, *results)`` queues results for commands whose joined
    argv contains ``fragment``; the last queued result is repeated once the
    queue runs down. The most recent matching script wins, so a test can
    override a fixture. Unscripted commands succeed with empty output.
    """

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.inputs: List[Optional[str]] = []
        self._scripts: List[tuple] = []

    def script(self, fragment: str, *results: Any) -> None:
        self._scripts.append((fragment, list(results)))

    def run(
        self, argv: Sequence[str], capture: bool = True, input: Optional[str] = None
    ) -> CommandResult:
        argv = [str(arg) for arg in argv]
        self.calls.append(argv)
        self.inputs.append(input)
        line = " ".join(argv)

        for fragment, queue in reversed(self._scripts):
            if fragment in line:
                item = queue.pop(0) if len(queue) > 1 else queue[0]
                if isinstance(item, CommandResult):
                    return item
                if isinstance(item, int):
                    return CommandResult(tuple(argv), item, "", "boom" if item else "")
                return CommandResult(tuple(argv), 0, item, "")
        return CommandResult(tuple(argv), 0, "", "")

    @property
    def lines(self) -> List[str]:
        return [" ".join(call) for call in self.calls]

    def matching(self, fragment: str) -> List[str]:
        return [line for line in self.lines if fragment in line]


def pod_manifest(
    name: str,
    ready: int,
    total: int,
    phase: str = "Running",
    deleting: bool = False,
    sidecar_ready: Optional[bool] = None,
) -> Dict[str, Any]:
    """A pod object shaped like `kubectl get pods -o json` items.

    With ``sidecar_ready`` set, istio-proxy runs as a native sidecar (an init
    container with restartPolicy Always) next to a one-shot istio-init.
    """
    metadata: Dict[str, Any] = {"name": name, "namespace": "default"}
    if deleting:
        metadata["deletionTimestamp"] = "2024-01-01T00:00:00Z"
    spec: Dict[str, Any] = {"containers": [{"name": f"c{i}"} for i in range(total)]}
    status: Dict[str, Any] = {
        "phase": phase,
        "containerStatuses": [{"name": f"c{i}", "ready": i < ready} for i in range(total)],
    }
    if sidecar_ready is not None:
        spec["initContainers"] = [
            {"name": "istio-init"},
            {"name": "istio-proxy", "restartPolicy": "Always"},
        ]
        status["initContainerStatuses"] = [
            {"name": "istio-init", "ready": False},
            {"name": "istio-proxy", "ready": sidecar_ready},
        ]
    return {"metadata": metadata, "spec": spec, "status": status}


def pod_list(*pods: Dict[str, Any]) -> str:
    return json.dumps({"apiVersion": "v1", "kind": "List", "items": list(pods)})


def _create_mock_container(name: str, **attrs: Any) -> MagicMock:
    # name is a reserved MagicMock argument
    container = MagicMock(**attrs)
    container.name = name
    return container


def _create_mock_pod(
    name: str,
    ready: int,
    total: int,
    phase: str = "Running",
    sidecar_ready: Optional[bool] = None,
) -> MagicMock:
    """Create a mock V1Pod for the Kubernetes API client."""
    mock_pod = MagicMock()
    mock_pod.metadata.name = name
    mock_pod.metadata.deletion_timestamp = None
    mock_pod.status.phase = phase
    mock_pod.status.container_statuses = [MagicMock(ready=i < ready) for i in range(total)]
    mock_pod.spec.containers = [MagicMock() for _ in range(total)]
    mock_pod.spec.init_containers = []
    mock_pod.status.init_container_statuses = []
    if sidecar_ready is not None:
        mock_pod.spec.init_containers = [
            _create_mock_container("istio-init", restart_policy=None),
            _create_mock_container("istio-proxy", restart_policy="Always"),
        ]
        mock_pod.status.init_container_statuses = [
            _create_mock_container("istio-init", ready=False),
            _create_mock_container("istio-proxy", ready=sidecar_ready),
        ]
    return mock_pod


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Default settings, isolated from any .env file."""
    template = tmp_path / "k6.js.template"
    template.write_text("export default function () { http.get('<URL>'); }\n")
    return Settings(_env_file=None, k6_template=template, readiness_timeout=None)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def run_config() -> RunConfiguration:
    """Run configuration with two local resources and Fortio only."""
    return RunConfiguration(
        resources=["app.yaml", "gateway.yaml"],
        connections=8,
        vus=0,
    )


@pytest.fixture
def make_pod() -> Callable[..., Dict[str, Any]]:
    return pod_manifest


@pytest.fixture
def make_pod_list() -> Callable[..., str]:
    return pod_list


@pytest.fixture
def mock_core_api() -> Callable[..., MagicMock]:
    """Factory for a mock CoreV1Api whose successive pod lists are given.

    Each pod is a tuple of (name, ready, total[, phase[, sidecar_ready]]).
    """

    def _create(*snapshots: Sequence[tuple]) -> MagicMock:
        core = MagicMock()
        responses = []
        for snapshot in snapshots:
            pod_list_response = MagicMock()
            pod_list_response.items = [_create_mock_pod(*pod) for pod in snapshot]
            responses.append(pod_list_response)
        core.list_namespaced_pod.side_effect = responses
        return core

    return _create


# Monkey patches for testing without actual infrastructure
@pytest.fixture(autouse=True)
def patch_time_sleep(monkeypatch):
    """Patch time.sleep so readiness polling does not wait."""
    monkeypatch.setattr(time, "sleep", lambda x: None)


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "phase1: Control plane provisioning and preflight tests")
    config.addinivalue_line("markers", "phase2: Workload deployment and readiness tests")
    config.addinivalue_line("markers", "phase3: Ingress resolution tests")
    config.addinivalue_line("markers", "phase4: Load generation tests")
    config.addinivalue_line("markers", "phase5: End-to-end orchestration and CLI tests")
