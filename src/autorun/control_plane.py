"""Istio control-plane installation and sidecar auto-injection."""

import logging
from pathlib import Path
from typing import List, Optional

from src.autorun.exceptions import ProvisionError
from src.autorun.runner import CommandRunner
from src.autorun.settings import Settings

logger = logging.getLogger(__name__)


class ControlPlaneInstaller:
    """Installs and removes the mesh control plane with istioctl."""

    def __init__(self, runner: CommandRunner, settings: Settings):
        self.runner = runner
        self.istioctl = settings.istioctl
        self.kubectl = settings.kubectl
        self.system_namespace = settings.control_plane_namespace
        self.injection_label = settings.injection_label

    def install(self, config_path: Optional[Path], profile: str, namespace: str) -> None:
        """Install the control plane and enable auto-injection in a namespace.

        A config file that exists is used as the full installation configuration;
        otherwise the named profile is installed.

        Raises:
            ProvisionError: istioctl or the namespace label failed
        """
        print("Installing Istio ...")
        if config_path is not None and Path(config_path).is_file():
            flags = ["-f", str(config_path)]
        else:
            if config_path is not None:
                logger.warning(
                    "Configuration file %s not found, installing profile '%s'", config_path, profile
                )
            flags = ["--set", f"profile={profile}"]

        result = self.runner.run([self.istioctl, "install", "-y", *flags], capture=False)
        if not result.ok:
            raise ProvisionError(f"control plane install failed: {result.describe()}")

        print(f"Auto inject Envoy sidecar proxies in '{namespace}' namespace ...")
        result = self.runner.run(
            [
                self.kubectl,
                "label",
                "namespace",
                namespace,
                f"{self.injection_label}=enabled",
                "--overwrite",
            ]
        )
        if not result.ok:
            raise ProvisionError(f"labelling namespace '{namespace}' failed: {result.describe()}")

    def uninstall(self, namespace: str) -> None:
        """Remove the control plane, the injection label and the control-plane namespace.

        Every step is attempted even if an earlier one fails, so this is safe
        after a partial install.

        Raises:
            ProvisionError: one or more steps failed
        """
        steps = [
            (
                "Uninstalling Istio ...",
                [self.istioctl, "uninstall", "-y", "--purge"],
            ),
            (
                "Removing the label for sidecar proxies auto-injection ...",
                [self.kubectl, "label", "namespace", namespace, f"{self.injection_label}-"],
            ),
            (
                "Removing the Istio namespace ...",
                [self.kubectl, "delete", "namespace", self.system_namespace],
            ),
        ]

        failures: List[str] = []
        for message, argv in steps:
            print(message)
            result = self.runner.run(argv)
            if not result.ok:
                logger.warning("Uninstall step failed: %s", result.describe())
                failures.append(result.describe())

        if failures:
            raise ProvisionError("control plane uninstall incomplete: " + "; ".join(failures))
