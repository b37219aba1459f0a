"""
istio-autorun

Provision an Istio control plane, deploy a workload behind it, wait for
every pod and sidecar to serve, load test it through the ingress gateway,
and tear everything down again in reverse order.

Pipeline:
    1. Install the control plane and enable sidecar injection
    2. Apply workload manifests in order
    3. Wait until one pod snapshot is entirely ready
    4. Resolve the ingress gateway endpoint
    5. Run Fortio and/or k6 against the target URL
    6. Delete the workload in reverse order and uninstall the control plane
"""

__version__ = "1.0.0"
