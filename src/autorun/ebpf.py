"""Optional eBPF TCP/IP bypass daemonset.

The bypass short-circuits the loopback hop between application containers
and their sidecars. It is deployed ahead of the workload so that it is the
last resource removed.
"""

from pathlib import Path
from typing import Optional

from src.autorun.models import ResourceRef


def bypass_manifest(manifest: str, search_dir: Optional[Path] = None) -> ResourceRef:
    """Pick the bypass manifest, preferring a local copy of the same file name.

    Args:
        manifest: Manifest URI or path
        search_dir: Where to look for a local copy (default: current directory)
    """
    local = (search_dir or Path.cwd()) / manifest.rstrip("/").rsplit("/", 1)[-1]
    location = str(local) if local.is_file() else manifest
    # The daemonset names its own namespace
    return ResourceRef(location=location, namespaced=False)
