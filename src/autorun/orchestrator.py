"""End-to-end run: install, deploy, wait, resolve, load, tear down.

Setup failures stop the pipeline but never skip cleanup: whatever was
applied is deleted in reverse order and the control plane is uninstalled,
unless the operator asked to keep resources.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from tabulate import tabulate

from src.autorun.config import EXIT_CODES
from src.autorun.control_plane import ControlPlaneInstaller
from src.autorun.ebpf import bypass_manifest
from src.autorun.exceptions import AutorunError
from src.autorun.ingress import IngressResolver, build_target_url
from src.autorun.loadtest import FortioBackend, K6Backend, LoadTestDriver
from src.autorun.models import DeploymentStack, RunConfiguration, RunReport
from src.autorun.readiness import ReadinessGate, make_pod_lister
from src.autorun.runner import CommandRunner
from src.autorun.settings import Settings
from src.autorun.workload import WorkloadManager

logger = logging.getLogger(__name__)


class Orchestrator:
    """Sequences the components for one run."""

    def __init__(
        self,
        config: RunConfiguration,
        settings: Settings,
        runner: Optional[CommandRunner] = None,
        installer: Optional[ControlPlaneInstaller] = None,
        workload: Optional[WorkloadManager] = None,
        resolver: Optional[IngressResolver] = None,
        driver: Optional[LoadTestDriver] = None,
    ):
        self.config = config
        self.settings = settings
        self.runner = runner or CommandRunner(timeout=settings.command_timeout)
        self.installer = installer or ControlPlaneInstaller(self.runner, settings)
        if workload is None:
            gate = ReadinessGate(
                make_pod_lister(self.runner, settings),
                interval=settings.poll_interval,
                timeout=config.readiness_timeout,
            )
            workload = WorkloadManager(self.runner, settings, gate, config.namespace)
        self.workload = workload
        self.resolver = resolver or IngressResolver(self.runner, settings)
        self.driver = driver or LoadTestDriver(
            [
                FortioBackend(
                    self.runner, config.connections, config.fortio_params, settings.fortio
                ),
                K6Backend(
                    self.runner,
                    config.vus,
                    config.k6_params,
                    settings.k6,
                    template=settings.k6_template,
                ),
            ]
        )
        self.stack = DeploymentStack()
        self.report = RunReport(namespace=config.namespace, kept=config.keep_resources)
        self._first_error: Optional[AutorunError] = None

    def _record(self, error: AutorunError) -> None:
        logger.error("%s: %s", type(error).__name__, error)
        self.report.errors.append(f"{type(error).__name__}: {error}")
        if self._first_error is None:
            self._first_error = error

    @property
    def resources(self):
        resources = list(self.config.resources)
        if self.config.ebpf_bypass:
            resources.insert(0, bypass_manifest(self.settings.ebpf_bypass_manifest))
        return resources

    def setup_and_load(self) -> None:
        """Steps 1-5. Raises on the first fatal error."""
        config = self.config
        self.installer.install(config.config_path, config.profile, config.namespace)

        try:
            self.report.readiness_polls = self.workload.deploy(self.resources, self.stack)
        finally:
            self.report.applied = [str(ref) for ref in self.stack]

        endpoint = self.resolver.resolve(self.settings.control_plane_namespace)
        self.report.endpoint = endpoint
        url = build_target_url(endpoint, config.secure, config.match_path)
        self.report.target_url = url

        results, errors = self.driver.run(url)
        self.report.load_results = results
        for error in errors:
            self._record(error)

    def cleanup(self) -> None:
        """Step 6: delete the workload in reverse order, then the control plane."""
        if self.config.keep_resources:
            print("Keeping installed resources.")
            return

        try:
            self.workload.drain(self.stack)
        except AutorunError as e:
            self._record(e)
        finally:
            self.report.deleted = [str(ref) for ref in self.workload.deleted]

        try:
            self.installer.uninstall(self.config.namespace)
        except AutorunError as e:
            self._record(e)

    def run(self) -> RunReport:
        """Run the whole pipeline.

        Returns:
            The run report, with exit_code set from the first error
        """
        try:
            self.setup_and_load()
        except AutorunError as e:
            self._record(e)
        finally:
            # Also reached on KeyboardInterrupt, which then propagates
            self.cleanup()
            self.report.finished_at = datetime.now(timezone.utc)

        if self._first_error is not None:
            self.report.exit_code = self._first_error.exit_code
        else:
            self.report.exit_code = EXIT_CODES["ok"]
        return self.report


def print_summary(report: RunReport) -> None:
    """Print the run report as a table."""
    rows = [
        ["Namespace", report.namespace],
        ["Applied", "\n".join(report.applied) or "-"],
        ["Readiness polls", report.readiness_polls],
        ["Target URL", report.target_url or "-"],
    ]
    for result in report.load_results:
        status = "ok" if result.ok else f"exit {result.returncode}"
        rows.append([f"{result.backend} ({result.level})", status])
    rows.append(["Deleted", "\n".join(report.deleted) or ("kept" if report.kept else "-")])
    rows.append(["Errors", "\n".join(report.errors) or "none"])
    rows.append(["Duration", f"{report.duration_seconds:.1f}s"])

    print("\n" + "=" * 60)
    print("RUN SUMMARY")
    print("=" * 60)
    print(tabulate(rows, tablefmt="grid"))


def save_report(report: RunReport, results_dir: Path) -> Path:
    """Write the report as JSON and return its path."""
    results_dir.mkdir(parents=True, exist_ok=True)
    stamp = report.started_at.strftime("%Y%m%d_%H%M%S")
    report_file = results_dir / f"autorun_{report.namespace}_{stamp}.json"
    report_file.write_text(report.model_dump_json(indent=2), encoding="utf-8")
    return report_file
