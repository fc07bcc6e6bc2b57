"""Test helper modules for the canonsync test suite.

- project: throwaway repositories with canonical sources and a manifest
"""
from __future__ import annotations

from helpers.project import (
    STANDARD_MANIFEST,
    ProjectFactory,
    populate_standard_sources,
    snapshot_tree,
    write_yaml,
)

__all__ = [
    "STANDARD_MANIFEST",
    "ProjectFactory",
    "populate_standard_sources",
    "snapshot_tree",
    "write_yaml",
]
