"""
canonsync CLI package.

Top-level commands are auto-discovered from ``canonsync/cli/commands/``.

Framework utilities for building CLI commands:
- _output: Output formatting (JSON/text modes)
- _args: Common argument registration helpers
- _utils: Shared CLI utilities
"""
from ._output import OutputFormatter
from ._args import (
    add_json_flag,
    add_repo_root_flag,
    add_manifest_flag,
    add_dry_run_flag,
    add_verbose_flag,
    add_standard_flags,
)
from ._utils import EXIT_MANIFEST_ERROR, build_engine, get_repo_root

__all__ = [
    # Output formatting
    "OutputFormatter",
    # Argument helpers
    "add_json_flag",
    "add_repo_root_flag",
    "add_manifest_flag",
    "add_dry_run_flag",
    "add_verbose_flag",
    "add_standard_flags",
    # Utilities
    "EXIT_MANIFEST_ERROR",
    "build_engine",
    "get_repo_root",
]
