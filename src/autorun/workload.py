"""Applying and deleting the workload manifests."""

import logging
from typing import Iterable, List, Optional, Sequence

from src.autorun.exceptions import DeploymentError
from src.autorun.models import DeploymentStack, ResourceRef
from src.autorun.readiness import ReadinessGate
from src.autorun.runner import CommandRunner
from src.autorun.settings import Settings

logger = logging.getLogger(__name__)


class WorkloadManager:
    """Deploys resources in order and removes them in exactly the reverse order.

    Dependents such as a gateway referencing a service must go before what
    they depend on, so deletion always walks the list backwards.
    """

    def __init__(
        self,
        runner: CommandRunner,
        settings: Settings,
        gate: ReadinessGate,
        namespace: str,
    ):
        self.runner = runner
        self.kubectl = settings.kubectl
        self.gate = gate
        self.namespace = namespace
        self.deleted: List[ResourceRef] = []

    def _kubectl(self, verb: str, ref: ResourceRef, *extra: str) -> List[str]:
        argv = [self.kubectl, verb, "-f", ref.location, *extra]
        if ref.namespaced:
            argv.extend(["-n", self.namespace])
        return argv

    def apply(self, ref: ResourceRef) -> None:
        print(f"Deploying resource {ref} ...")
        result = self.runner.run(self._kubectl("apply", ref), capture=False)
        if not result.ok:
            raise DeploymentError(f"applying {ref} failed: {result.describe()}")

    def delete(self, ref: ResourceRef) -> None:
        print(f"Deleting resource {ref} ...")
        result = self.runner.run(self._kubectl("delete", ref, "--ignore-not-found"), capture=False)
        if not result.ok:
            raise DeploymentError(f"deleting {ref} failed: {result.describe()}")
        self.deleted.append(ref)

    def deploy(
        self, resources: Sequence[ResourceRef], stack: Optional[DeploymentStack] = None
    ) -> int:
        """Apply resources in order, then wait for every pod to be ready.

        Each applied resource is pushed onto ``stack`` so a failure later on
        still knows what to clean up.

        Returns:
            Number of readiness polls

        Raises:
            DeploymentError: a resource could not be applied
            ReadinessTimeout: pods did not become ready in time
        """
        for ref in resources:
            self.apply(ref)
            if stack is not None:
                stack.push(ref)
        return self.gate.wait(self.namespace)

    def _delete_in_order(self, refs: Iterable[ResourceRef]) -> None:
        failures: List[str] = []
        for ref in refs:
            try:
                self.delete(ref)
            except DeploymentError as e:
                logger.warning("%s", e)
                failures.append(str(e))

        if failures:
            raise DeploymentError("; ".join(failures))

    def teardown(self, resources: Sequence[ResourceRef]) -> None:
        """Delete resources in reverse of the order given.

        Deletion carries on past failures.

        Raises:
            DeploymentError: one or more deletions failed
        """
        self._delete_in_order(reversed(tuple(resources)))

    def drain(self, stack: DeploymentStack) -> None:
        """Delete everything on the stack, last applied first."""
        self._delete_in_order(stack.drain())
