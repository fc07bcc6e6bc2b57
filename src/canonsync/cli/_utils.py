"""Shared CLI utility functions."""
from __future__ import annotations

import argparse
from pathlib import Path

from canonsync.core.engine import PropagationEngine
from canonsync.core.stdlib_logging import (
    configure_stdlib_logging,
    enable_verbose_stderr,
    suppress_lastresort_handler,
)
from canonsync.core.utils.paths import resolve_project_root

# Exit code for manifest-level (fatal) errors.
EXIT_MANIFEST_ERROR = 2


def get_repo_root(args: argparse.Namespace) -> Path:
    """Get repository root from --repo-root or auto-detect."""
    if getattr(args, "repo_root", None):
        return Path(args.repo_root).resolve()
    return resolve_project_root()


def build_engine(args: argparse.Namespace) -> PropagationEngine:
    """Create the engine for a command and configure logging from the manifest.

    Raises:
        ManifestError: If the manifest cannot be loaded
    """
    suppress_lastresort_handler()
    if getattr(args, "verbose", False):
        enable_verbose_stderr()

    engine = PropagationEngine(get_repo_root(args), getattr(args, "manifest", None))
    settings = engine.manifest.settings
    if settings.log_file:
        log_path = Path(settings.log_file)
        if not log_path.is_absolute():
            log_path = engine.repo_root / log_path
        configure_stdlib_logging(log_path=log_path, level=settings.log_level)
    return engine


__all__ = ["EXIT_MANIFEST_ERROR", "get_repo_root", "build_engine"]
