"""Propagation engine.

High-level orchestration of manifest loading, resolution, apply, drift
checks and pruning.
"""
from __future__ import annotations

import logging
from pathlib import Path

from canonsync.core.applier import SyncApplier
from canonsync.core.drift import ARTEFACT_REDIRECT, DriftReporter, classify_artefact
from canonsync.core.exceptions import RedirectMarkerMissing, SyncEntryError
from canonsync.core.manifest import Manifest, ManifestConfig
from canonsync.core.models import ApplyAction, ApplyResult, DriftReport, SyncEntry, SyncReport
from canonsync.core import redirect
from canonsync.core.resolver import ManifestResolver
from canonsync.core.utils.io import read_text, write_text

logger = logging.getLogger(__name__)


class PropagationEngine:
    """Keeps target directories consistent with canonical sources.

    Manifest errors (including conflicts) are raised before any write;
    per-entry errors are collected into the returned reports.
    """

    def __init__(self, repo_root: Path, manifest_path: Path | str | None = None) -> None:
        """Initialize engine.

        Args:
            repo_root: Path to repository root
            manifest_path: Optional manifest override
        """
        self.repo_root = Path(repo_root).resolve()
        self.config = ManifestConfig(self.repo_root, manifest_path)
        self._manifest: Manifest | None = None

    @property
    def manifest(self) -> Manifest:
        if self._manifest is None:
            self._manifest = self.config.load()
        return self._manifest

    def resolve(self) -> list[SyncEntry]:
        return ManifestResolver(self.manifest).resolve()

    def sync(self, *, dry_run: bool = False) -> SyncReport:
        """Resolve the manifest and apply every entry.

        Raises:
            ManifestError: If the manifest is invalid or has conflicts
        """
        entries = self.resolve()
        report = SyncApplier(self.manifest, dry_run=dry_run).apply_all(entries)
        logger.info(
            "sync: %d entries, %d changed, %d failed",
            len(report.results),
            len(report.changed),
            len(report.failed),
        )
        return report

    def check(self) -> DriftReport:
        """Resolve the manifest and report drift without writing anything."""
        entries = self.resolve()
        return DriftReporter(self.manifest).report(entries)

    def prune(self, *, confirm: bool = False) -> SyncReport:
        """Remove managed artefacts that are no longer in the manifest.

        Without ``confirm`` nothing is touched and the report lists what
        would be removed. Redirect files only lose their marker block and are
        deleted when nothing else is left in them.
        """
        manifest = self.manifest
        unexpected = self.check().unexpected
        results: list[ApplyResult] = []

        for record in unexpected:
            path = manifest.repo_root / record.label
            # Re-classify right before acting on the path.
            kind = classify_artefact(path, manifest)
            if kind is None:
                continue
            if not confirm:
                results.append(ApplyResult(label=record.label, action=ApplyAction.REMOVED))
                continue
            try:
                if kind == ARTEFACT_REDIRECT:
                    remaining = redirect.strip_block(read_text(path))
                    if remaining is None:
                        raise RedirectMarkerMissing(
                            f"{record.label} has no complete redirect block; leaving it in place",
                            path=record.label,
                        )
                    if remaining.strip():
                        write_text(path, remaining)
                        action = ApplyAction.UPDATED
                    else:
                        path.unlink()
                        action = ApplyAction.REMOVED
                else:
                    path.unlink()
                    action = ApplyAction.REMOVED
            except (SyncEntryError, OSError, UnicodeDecodeError) as exc:
                logger.warning("prune %s: %s", record.label, exc)
                results.append(
                    ApplyResult(
                        label=record.label,
                        action=ApplyAction.FAILED,
                        error_code=type(exc).__name__,
                        error=str(exc),
                    )
                )
                continue
            logger.info("prune: %s %s (%s)", action.value, record.label, kind)
            results.append(ApplyResult(label=record.label, action=action))

        return SyncReport(results=tuple(results))


__all__ = ["PropagationEngine"]
