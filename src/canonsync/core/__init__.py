"""canonsync propagation engine.

Key components:
- ManifestConfig: Load the manifest from .canonsync/manifest.yaml
- ManifestResolver: Map canonical sources onto every target's representation
- SyncApplier: Create/update redirect files, symlinks and companions
- DriftReporter: Read-only drift classification for CI
- PropagationEngine: Orchestrate sync, check and prune
"""
from __future__ import annotations

from canonsync.core.applier import SyncApplier
from canonsync.core.drift import DriftReporter
from canonsync.core.engine import PropagationEngine
from canonsync.core.exceptions import (
    CanonsyncError,
    GenerationError,
    ManifestConflict,
    ManifestError,
    PathConflict,
    RedirectMarkerMissing,
    SyncEntryError,
)
from canonsync.core.manifest import Manifest, ManifestConfig, ManifestSettings, load_manifest
from canonsync.core.models import (
    ApplyAction,
    ApplyResult,
    CanonicalSource,
    ContentKind,
    DriftRecord,
    DriftReport,
    DriftStatus,
    EntryRole,
    Strategy,
    SyncEntry,
    SyncPolicy,
    SyncReport,
    TargetDirectory,
)
from canonsync.core.resolver import ManifestResolver, resolve_entries

__all__ = [
    # Manifest
    "Manifest",
    "ManifestConfig",
    "ManifestSettings",
    "load_manifest",
    # Pipeline
    "ManifestResolver",
    "resolve_entries",
    "SyncApplier",
    "DriftReporter",
    "PropagationEngine",
    # Models
    "ContentKind",
    "Strategy",
    "EntryRole",
    "ApplyAction",
    "DriftStatus",
    "CanonicalSource",
    "SyncPolicy",
    "TargetDirectory",
    "SyncEntry",
    "ApplyResult",
    "DriftRecord",
    "SyncReport",
    "DriftReport",
    # Exceptions
    "CanonsyncError",
    "ManifestError",
    "ManifestConflict",
    "SyncEntryError",
    "PathConflict",
    "RedirectMarkerMissing",
    "GenerationError",
]
