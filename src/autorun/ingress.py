"""Ingress gateway endpoint discovery and target URL construction."""

import logging

from src.autorun.config import (
    INGRESS_PLAIN_PORT_NAME,
    INGRESS_POD_SELECTOR,
    INGRESS_SECURE_PORT_NAME,
    INGRESS_SERVICE,
)
from src.autorun.exceptions import ResolutionError
from src.autorun.models import IngressEndpoint
from src.autorun.runner import CommandRunner
from src.autorun.settings import Settings

logger = logging.getLogger(__name__)


def _port_path(name: str, field: str) -> str:
    return '{.spec.ports[?(@.name=="%s")].%s}' % (name, field)


class IngressResolver:
    """Finds the host and ports external clients use to reach the gateway.

    Clusters with a cloud load balancer expose an external IP on the gateway
    service. Without one, traffic goes to a node's host IP on the service's
    node ports.
    """

    def __init__(self, runner: CommandRunner, settings: Settings):
        self.runner = runner
        self.kubectl = settings.kubectl

    def _get(self, namespace: str, kind: str, jsonpath: str, *selector: str) -> str:
        result = self.runner.run(
            [self.kubectl, "-n", namespace, "get", kind, *selector, "-o", f"jsonpath={jsonpath}"]
        )
        if not result.ok:
            raise ResolutionError(f"ingress lookup failed: {result.describe()}")
        return result.output

    def _service(self, namespace: str, jsonpath: str) -> str:
        return self._get(namespace, "svc", jsonpath, INGRESS_SERVICE)

    def resolve(self, namespace: str) -> IngressEndpoint:
        """Resolve the ingress endpoint.

        Args:
            namespace: Namespace of the ingress gateway service

        Returns:
            IngressEndpoint for the load balancer, or for a node port when
            the service has no external IP

        Raises:
            ResolutionError: a lookup failed or yielded no host; a missing
                port is only an error once its scheme is chosen
        """
        host = self._service(namespace, "{.status.loadBalancer.ingress[0].ip}")
        if host:
            port_field = "port"
        else:
            logger.info("No load balancer IP on %s, using node ports", INGRESS_SERVICE)
            host = self._get(
                namespace, "pod", "{.items[0].status.hostIP}", "-l", INGRESS_POD_SELECTOR
            )
            port_field = "nodePort"

        plain_port = self._service(namespace, _port_path(INGRESS_PLAIN_PORT_NAME, port_field))
        secure_port = self._service(namespace, _port_path(INGRESS_SECURE_PORT_NAME, port_field))

        if not host:
            raise ResolutionError(f"no host found for {INGRESS_SERVICE} in '{namespace}'")

        endpoint = IngressEndpoint(host=host, plain_port=plain_port, secure_port=secure_port)
        print("Ingress gateway URLs:")
        for url in endpoint.urls():
            print(f"\t{url}")
        return endpoint


def build_target_url(endpoint: IngressEndpoint, secure: bool, match_path: str = "") -> str:
    """Join scheme, ingress address and match path into the load-test target.

    Raises:
        ResolutionError: the port for the chosen scheme is unknown
    """
    if secure:
        scheme, port = "https", endpoint.secure_port
    else:
        scheme, port = "http", endpoint.plain_port
    if not port:
        raise ResolutionError(f"ingress gateway exposes no {scheme} port")
    return f"{scheme}://{endpoint.host}:{port}{match_path}"
