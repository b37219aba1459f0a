"""Cluster object names, default workloads and exit codes."""

from typing import Dict

# Istio ingress gateway
INGRESS_SERVICE = "istio-ingressgateway"
INGRESS_POD_SELECTOR = "istio=ingressgateway"
INGRESS_PLAIN_PORT_NAME = "http2"
INGRESS_SECURE_PORT_NAME = "https"

# Default workload: Istio BookInfo sample app and its gateway
BOOKINFO_WORKLOAD = (
    "https://raw.githubusercontent.com/istio/istio/master/samples/bookinfo/platform/kube/bookinfo.yaml"
)
BOOKINFO_GATEWAY = (
    "https://raw.githubusercontent.com/istio/istio/master/samples/bookinfo/networking/bookinfo-gateway.yaml"
)
DEFAULT_WORKLOAD = (BOOKINFO_WORKLOAD, BOOKINFO_GATEWAY)

EBPF_BYPASS_MANIFEST = (
    "https://raw.githubusercontent.com/intel/istio-tcpip-bypass/main/bypass-tcpip-daemonset.yaml"
)

# Placeholder replaced by the target URL in the k6 script template
K6_URL_PLACEHOLDER = "<URL>"

# Fortio connections per logical CPU when -c is not given
FORTIO_CONNECTIONS_PER_CPU = 4

# Process exit codes per error kind
EXIT_CODES: Dict[str, int] = {
    "ok": 0,
    "error": 1,
    "usage": 2,
    "preflight": 3,
    "provision": 10,
    "deployment": 11,
    "readiness": 12,
    "resolution": 13,
    "loadtest": 14,
    "interrupted": 130,
}
