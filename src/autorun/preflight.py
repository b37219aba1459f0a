"""Checks run before anything touches the cluster."""

import logging
import shutil
from pathlib import Path
from typing import List, Optional, Sequence

import yaml

from src.autorun.exceptions import PreflightError
from src.autorun.models import RunConfiguration
from src.autorun.settings import Settings

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("apiVersion", "kind", "metadata")


def required_tools(config: RunConfiguration, settings: Settings) -> List[str]:
    """Executables the run will invoke."""
    tools = [settings.kubectl, settings.istioctl]
    if config.connections > 0:
        tools.append(settings.fortio)
    if config.vus > 0:
        tools.append(settings.k6)
    return tools


def missing_tools(tools: List[str]) -> List[str]:
    return [tool for tool in tools if shutil.which(tool) is None]


def validate_manifest(path: Path, required: Sequence[str] = REQUIRED_KEYS) -> List[str]:
    """Parse a local manifest and check each document looks like a Kubernetes object.

    Returns:
        Problems found (empty if the manifest is usable)
    """
    try:
        with open(path) as f:
            docs = [doc for doc in yaml.safe_load_all(f) if doc is not None]
    except OSError as e:
        return [f"{path}: cannot read: {e}"]
    except yaml.YAMLError as e:
        return [f"{path}: invalid YAML: {e}"]

    if not docs:
        return [f"{path}: no documents"]

    problems = []
    for index, doc in enumerate(docs):
        if not isinstance(doc, dict):
            problems.append(f"{path}: document {index} is not a mapping")
            continue
        missing = [key for key in required if key not in doc]
        if missing:
            problems.append(f"{path}: document {index} missing {', '.join(missing)}")
    return problems


def run_preflight(
    config: RunConfiguration, settings: Settings, tools: Optional[List[str]] = None
) -> None:
    """Validate tools and local inputs.

    Remote manifests are not fetched; only local files are parsed.

    Raises:
        PreflightError: listing every problem found
    """
    tools = tools or required_tools(config, settings)
    problems = [f"{tool}: not found on PATH" for tool in missing_tools(tools)]

    if config.config_path is not None and config.config_path.is_file():
        problems.extend(validate_manifest(config.config_path, required=("apiVersion", "kind")))

    for ref in config.resources:
        if ref.is_remote:
            continue
        path = Path(ref.location).expanduser()
        if not path.exists():
            problems.append(f"{ref}: no such file")
        elif path.is_file():
            problems.extend(validate_manifest(path))
        else:
            logger.debug("Skipping validation of directory %s", path)

    if settings.k6_template and config.vus > 0 and not Path(settings.k6_template).is_file():
        problems.append(f"{settings.k6_template}: k6 script template not found")

    if problems:
        raise PreflightError("preflight checks failed:\n  " + "\n  ".join(problems))
    logger.info("Preflight checks passed")
