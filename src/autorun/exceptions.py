"""Error taxonomy for the provisioning pipeline.

Each error carries the process exit code the CLI reports for it.
"""

from src.autorun.config import EXIT_CODES


class AutorunError(Exception):
    """Base class for all pipeline failures."""

    kind = "error"

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self.kind]


class PreflightError(AutorunError):
    """The environment or inputs failed validation before any side effect."""

    kind = "preflight"


class ProvisionError(AutorunError):
    """Control-plane install, uninstall or namespace labelling failed."""

    kind = "provision"


class DeploymentError(AutorunError):
    """Applying or deleting a workload resource failed."""

    kind = "deployment"


class ReadinessTimeout(AutorunError):
    """Workload pods did not all become ready within the configured bound."""

    kind = "readiness"


class ResolutionError(AutorunError):
    """The ingress gateway endpoint could not be determined."""

    kind = "resolution"


class LoadTestError(AutorunError):
    """A load-generation backend exited unsuccessfully."""

    kind = "loadtest"

    def __init__(self, backend: str, message: str):
        super().__init__(f"{backend}: {message}")
        self.backend = backend
