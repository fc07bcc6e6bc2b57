"""Drift reporter.

Read-only comparison of the resolved entries against the filesystem, plus a
scan for managed artefacts (canonical symlinks, redirect files, generated
companions) that no longer belong to any entry.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator

from canonsync.core.exceptions import GenerationError
from canonsync.core.manifest import Manifest
from canonsync.core.models import DriftRecord, DriftReport, DriftStatus, EntryRole, SyncEntry
from canonsync.core import redirect
from canonsync.core.applier import (
    expected_companion,
    expected_redirect_block,
    link_points_at,
    physical_path,
    points_into_sources,
)
from canonsync.core.transforms import GENERATED_HEADER_PREFIX
from canonsync.core.utils.io import read_text
from canonsync.core.utils.paths import PROJECT_CONFIG_DIR, relative_label

logger = logging.getLogger(__name__)

# Files larger than this are never canonsync artefacts.
_SCAN_MAX_BYTES = 1024 * 1024

ARTEFACT_LINK = "symlink"
ARTEFACT_REDIRECT = "redirect"
ARTEFACT_COMPANION = "companion"


def classify_artefact(path: Path, manifest: Manifest) -> str | None:
    """Return the managed artefact kind of ``path`` or None when unmanaged."""
    if path.is_symlink():
        return ARTEFACT_LINK if points_into_sources(path, manifest) else None
    if not path.is_file():
        return None
    try:
        if path.stat().st_size > _SCAN_MAX_BYTES:
            return None
        data = path.read_bytes()
    except OSError:
        return None
    if data.startswith(GENERATED_HEADER_PREFIX.encode("utf-8")):
        return ARTEFACT_COMPANION
    # Only a complete marker block makes a file ours.
    if redirect.split_block(data.decode("utf-8", errors="replace")) is not None:
        return ARTEFACT_REDIRECT
    return None


class DriftReporter:
    """Classify resolved entries and find unexpected managed artefacts."""

    def __init__(self, manifest: Manifest) -> None:
        self.manifest = manifest

    # ------------------------------------------------------------------
    # Per-entry classification
    # ------------------------------------------------------------------
    def _record(self, entry: SyncEntry, status: DriftStatus, detail: str | None = None, error_code: str | None = None) -> DriftRecord:
        return DriftRecord(
            label=entry.label,
            status=status,
            source=entry.source.name,
            detail=detail,
            error_code=error_code,
        )

    def _classify_link(self, entry: SyncEntry) -> DriftRecord:
        path = entry.path
        if link_points_at(path, entry.source.path):
            return self._record(entry, DriftStatus.IN_SYNC)
        if path.is_symlink():
            return self._record(entry, DriftStatus.STALE, f"symlink points at {os.readlink(path)}")
        if path.exists():
            return self._record(
                entry,
                DriftStatus.CONFLICT,
                "a real file or directory occupies the symlink path",
                "PathConflict",
            )
        return self._record(entry, DriftStatus.MISSING)

    def _classify_redirect(self, entry: SyncEntry) -> DriftRecord:
        path = entry.path
        if path.is_symlink():
            if points_into_sources(path, self.manifest):
                return self._record(entry, DriftStatus.STALE, "symlink to be replaced by a redirect file")
            return self._record(entry, DriftStatus.CONFLICT, "a foreign symlink occupies the path", "PathConflict")
        if not path.exists():
            return self._record(entry, DriftStatus.MISSING)
        if path.is_dir():
            return self._record(entry, DriftStatus.CONFLICT, "a directory occupies the path", "PathConflict")

        try:
            text = read_text(path)
        except UnicodeDecodeError as exc:
            return self._record(
                entry,
                DriftStatus.CONFLICT,
                f"file is not valid UTF-8: {exc}",
                "UnicodeDecodeError",
            )
        parts = redirect.split_block(text)
        if parts is None:
            return self._record(
                entry,
                DriftStatus.CONFLICT,
                "file has no redirect marker",
                "RedirectMarkerMissing",
            )
        if parts[1] != expected_redirect_block(entry):
            return self._record(entry, DriftStatus.STALE, "redirect marker points elsewhere")
        return self._record(entry, DriftStatus.IN_SYNC)

    def _classify_companion(self, entry: SyncEntry) -> DriftRecord:
        path = entry.path
        if path.is_dir() and not path.is_symlink():
            return self._record(entry, DriftStatus.CONFLICT, "a directory occupies the path", "PathConflict")
        try:
            expected = expected_companion(entry)
        except GenerationError as exc:
            return self._record(entry, DriftStatus.CONFLICT, str(exc), "GenerationError")
        if path.is_symlink():
            return self._record(entry, DriftStatus.STALE, "symlink to be replaced by a generated file")
        if not path.exists():
            return self._record(entry, DriftStatus.MISSING)
        if path.read_bytes() != expected.encode("utf-8"):
            return self._record(entry, DriftStatus.STALE, "generated content is out of date")
        return self._record(entry, DriftStatus.IN_SYNC)

    def classify(self, entry: SyncEntry) -> DriftRecord:
        if entry.role is EntryRole.LINK:
            return self._classify_link(entry)
        if entry.role is EntryRole.REDIRECT:
            return self._classify_redirect(entry)
        return self._classify_companion(entry)

    # ------------------------------------------------------------------
    # Unexpected artefacts
    # ------------------------------------------------------------------
    def _iter_candidates(self) -> Iterator[Path]:
        repo_root = self.manifest.repo_root
        ignore = set(self.manifest.settings.ignore) | {PROJECT_CONFIG_DIR}
        source_dirs = {s.path for s in self.manifest.sources if s.path.is_dir()}
        if self.manifest.canonical_root != repo_root:
            source_dirs.add(self.manifest.canonical_root)

        for dirpath, dirnames, filenames in os.walk(repo_root, followlinks=False):
            here = Path(dirpath)
            kept: list[str] = []
            for name in sorted(dirnames):
                child = here / name
                if child.is_symlink():
                    yield child
                    continue
                if name in ignore or child.resolve() in source_dirs:
                    continue
                kept.append(name)
            dirnames[:] = kept
            for name in sorted(filenames):
                yield here / name

    def find_unexpected(self, entries: Iterable[SyncEntry]) -> list[DriftRecord]:
        expected = {physical_path(e.path) for e in entries}
        source_files = {s.path for s in self.manifest.sources}
        records: list[DriftRecord] = []

        for path in self._iter_candidates():
            physical = physical_path(path)
            if physical in expected or physical in source_files:
                continue
            kind = classify_artefact(path, self.manifest)
            if kind is None:
                continue
            records.append(
                DriftRecord(
                    label=relative_label(path, self.manifest.repo_root),
                    status=DriftStatus.UNEXPECTED,
                    detail=kind,
                )
            )
        return records

    def report(self, entries: Iterable[SyncEntry]) -> DriftReport:
        entries = list(entries)
        records = [self.classify(e) for e in entries]
        records.extend(self.find_unexpected(entries))
        report = DriftReport(records=tuple(records))
        logger.debug("Drift report: %s", report.counts())
        return report


__all__ = [
    "ARTEFACT_LINK",
    "ARTEFACT_REDIRECT",
    "ARTEFACT_COMPANION",
    "DriftReporter",
    "classify_artefact",
]
