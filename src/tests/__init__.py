"""
istio-autorun Test Suite

Runs the whole provisioning pipeline against a scripted cluster.

Test Phases:
    1. Control plane provisioning and preflight
    2. Workload deployment and readiness
    3. Ingress resolution
    4. Load generation
    5. End-to-end orchestration and CLI
"""
