"""Centralized path configuration for the entire project.

This module provides a single source of truth for the files the runner
ships alongside its code.
"""

from pathlib import Path


class ProjectPaths:
    """Project directory structure paths."""

    def __init__(self, base_path: Path | None = None):
        """Initialize project paths.

        Args:
            base_path: Optional base path for the project root.
                      If None, auto-detects from this file's location.
        """
        if base_path is None:
            # Auto-detect: go up from src/common/paths.py to repository root
            self.root = Path(__file__).parent.parent.parent
        else:
            self.root = base_path

        # Source directories
        self.src = self.root / "src"
        self.autorun = self.src / "autorun"

        # Packaged templates
        self.templates = self.autorun / "templates"
        self.k6_template = self.templates / "k6.js.template"

    def validate(self) -> list[str]:
        """Validate that critical paths exist.

        Returns:
            List of missing critical paths (empty if all exist).
        """
        critical_paths = [
            ("Source directory", self.src),
            ("Templates directory", self.templates),
            ("k6 script template", self.k6_template),
        ]

        missing = []
        for name, path in critical_paths:
            if not path.exists():
                missing.append(f"{name}: {path}")

        return missing


# Global singleton instance
paths = ProjectPaths()


K6_TEMPLATE = paths.k6_template
