"""
Phase 2: Run configuration and data model

Tests for the immutable configuration and the values passed between steps.
"""
from pathlib import Path

import psutil
import pytest
from pydantic import ValidationError

from src.autorun.config import DEFAULT_WORKLOAD
from src.autorun.models import (
    CommandResult,
    DeploymentStack,
    ResourceRef,
    RunConfiguration,
    default_connections,
)


@pytest.mark.phase2
class TestRunConfiguration:
    """RunConfiguration defaults and validation"""

    def test_defaults(self):
        config = RunConfiguration()

        assert config.profile == "default"
        assert config.namespace == "default"
        assert config.vus == 0
        assert not config.secure
        assert not config.keep_resources
        assert [str(ref) for ref in config.resources] == list(DEFAULT_WORKLOAD)

    def test_default_connections_from_cpu_count(self, monkeypatch):
        monkeypatch.setattr(psutil, "cpu_count", lambda logical=True: 6)

        assert default_connections() == 24
        assert RunConfiguration().connections == 24

    def test_immutable(self):
        config = RunConfiguration()

        with pytest.raises(ValidationError):
            config.vus = 10

    def test_negative_levels_rejected(self):
        with pytest.raises(ValidationError):
            RunConfiguration(connections=-1)
        with pytest.raises(ValidationError):
            RunConfiguration(vus=-3)

    def test_invalid_namespace_rejected(self):
        with pytest.raises(ValidationError):
            RunConfiguration(namespace="Not_Valid")

    def test_resources_from_strings(self):
        config = RunConfiguration(resources=["a.yaml", "https://example.com/b.yaml"])

        assert config.resources[0] == ResourceRef(location="a.yaml")
        assert not config.resources[0].is_remote
        assert config.resources[1].is_remote

    def test_empty_resource_list_rejected(self):
        with pytest.raises(ValidationError):
            RunConfiguration(resources=[])

    def test_config_path_expanded(self):
        config = RunConfiguration(config_path="~/operator.yaml")

        assert config.config_path == Path.home() / "operator.yaml"


@pytest.mark.phase2
class TestDeploymentStack:
    """Append-only stack, drained last to first"""

    def test_drain_order(self):
        stack = DeploymentStack()
        for location in ("one", "two", "three"):
            stack.push(ResourceRef(location=location))

        assert [str(ref) for ref in stack.drain()] == ["three", "two", "one"]

    def test_no_push_once_draining(self):
        stack = DeploymentStack()
        stack.push(ResourceRef(location="one"))
        list(stack.drain())

        with pytest.raises(RuntimeError):
            stack.push(ResourceRef(location="two"))
        assert len(stack) == 1


@pytest.mark.phase2
class TestCommandResult:
    """CommandResult helpers"""

    def test_describe(self):
        result = CommandResult(("kubectl", "apply", "-f", "x.yaml"), 1, "", "error: not found\n")

        assert not result.ok
        assert result.describe() == "'kubectl apply -f x.yaml' exited with code 1: error: not found"
