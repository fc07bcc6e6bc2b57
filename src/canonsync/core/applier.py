"""Sync applier.

Makes the on-disk state of one entry match its expected representation.
Every operation is idempotent and atomic; per-entry failures are returned
as results so unrelated entries keep going.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from canonsync.core.exceptions import (
    GenerationError,
    PathConflict,
    RedirectMarkerMissing,
    SyncEntryError,
)
from canonsync.core.manifest import Manifest
from canonsync.core.models import ApplyAction, ApplyResult, EntryRole, SyncEntry, SyncReport
from canonsync.core import redirect
from canonsync.core.transforms import get_transform
from canonsync.core.utils.io import atomic_symlink, read_text, write_text

logger = logging.getLogger(__name__)


def physical_path(path: Path) -> Path:
    """Resolve every component of ``path`` except the last one."""
    return path.parent.resolve() / path.name


def link_text_for(entry: SyncEntry, link_style: str = "relative") -> str:
    """Return the symlink text pointing ``entry.path`` at its canonical source."""
    canonical = entry.source.path
    if link_style == "absolute":
        return str(canonical)
    return os.path.relpath(canonical, entry.path.parent.resolve())


def link_points_at(path: Path, canonical: Path) -> bool:
    """True when ``path`` is a symlink that resolves to ``canonical``."""
    if not path.is_symlink():
        return False
    try:
        return path.resolve() == canonical
    except (OSError, RuntimeError):
        # Broken loops count as pointing elsewhere.
        return False


def points_into_sources(path: Path, manifest: Manifest) -> bool:
    """True when ``path`` is a symlink resolving into canonical content.

    Canonical content is every source plus the canonical root itself when it
    is not the repository root.
    """
    if not path.is_symlink():
        return False
    try:
        resolved = path.resolve()
    except (OSError, RuntimeError):
        return False
    roots = [s.path for s in manifest.sources]
    if manifest.canonical_root != manifest.repo_root:
        roots.append(manifest.canonical_root)
    return any(resolved == root or resolved.is_relative_to(root) for root in roots)


def expected_redirect_block(entry: SyncEntry) -> str:
    return redirect.render_block(entry.source.name, entry.source.path, physical_path(entry.path))


def expected_companion(entry: SyncEntry) -> str:
    transform = get_transform(entry.policy.format)
    try:
        raw = entry.source.path.read_bytes()
    except OSError as exc:
        raise GenerationError(
            f"Cannot read canonical source: {exc}",
            path=entry.label,
            source=entry.source.name,
        ) from exc
    return transform.generate(entry.source, raw)


class SyncApplier:
    """Applies resolved sync entries to the filesystem."""

    def __init__(self, manifest: Manifest, *, dry_run: bool = False) -> None:
        """Initialize applier.

        Args:
            manifest: Loaded manifest
            dry_run: If True, report what would change without writing
        """
        self.manifest = manifest
        self.dry_run = dry_run

    # ------------------------------------------------------------------
    # Per-role handlers
    # ------------------------------------------------------------------
    def _apply_link(self, entry: SyncEntry) -> ApplyAction:
        path = entry.path
        canonical = entry.source.path

        if link_points_at(path, canonical):
            return ApplyAction.UNCHANGED

        if path.exists() and not path.is_symlink():
            kind = "directory" if path.is_dir() else "file"
            raise PathConflict(
                f"A real {kind} occupies the symlink-managed path {entry.label}",
                path=entry.label,
                source=entry.source.name,
            )

        action = ApplyAction.UPDATED if path.is_symlink() else ApplyAction.CREATED
        if not self.dry_run:
            atomic_symlink(
                path,
                link_text_for(entry, self.manifest.settings.link_style),
                target_is_directory=canonical.is_dir(),
            )
        return action

    def _apply_redirect(self, entry: SyncEntry) -> ApplyAction:
        path = entry.path
        block = expected_redirect_block(entry)

        if path.is_symlink():
            if not points_into_sources(path, self.manifest):
                raise PathConflict(
                    f"A foreign symlink occupies the redirect file {entry.label}",
                    path=entry.label,
                    source=entry.source.name,
                )
            # A link left by a previous policy is ours; the rename replaces the link itself.
            if not self.dry_run:
                write_text(path, redirect.new_file_content(block))
            return ApplyAction.UPDATED

        if not path.exists():
            if not self.dry_run:
                write_text(path, redirect.new_file_content(block))
            return ApplyAction.CREATED

        if path.is_dir():
            raise PathConflict(
                f"A directory occupies the redirect file {entry.label}",
                path=entry.label,
                source=entry.source.name,
            )

        current = read_text(path)
        updated = redirect.splice_block(current, block)
        if updated is None:
            raise RedirectMarkerMissing(
                f"{entry.label} exists but has no redirect marker; "
                f"add '{redirect.REDIRECT_BEGIN}' ... '{redirect.REDIRECT_END}' or remove the file",
                path=entry.label,
                source=entry.source.name,
            )
        if updated == current:
            return ApplyAction.UNCHANGED
        if not self.dry_run:
            write_text(path, updated)
        return ApplyAction.UPDATED

    def _apply_companion(self, entry: SyncEntry) -> ApplyAction:
        path = entry.path
        if path.is_dir() and not path.is_symlink():
            raise PathConflict(
                f"A directory occupies the generated companion {entry.label}",
                path=entry.label,
                source=entry.source.name,
            )

        content = expected_companion(entry)

        if path.is_symlink():
            action = ApplyAction.UPDATED
        elif path.exists():
            if path.read_bytes() == content.encode("utf-8"):
                return ApplyAction.UNCHANGED
            action = ApplyAction.UPDATED
        else:
            action = ApplyAction.CREATED

        if not self.dry_run:
            write_text(path, content)
        return action

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def apply(self, entry: SyncEntry) -> ApplyResult:
        """Apply one entry; never raises for per-entry failures."""
        try:
            if entry.role is EntryRole.LINK:
                action = self._apply_link(entry)
            elif entry.role is EntryRole.REDIRECT:
                action = self._apply_redirect(entry)
            else:
                action = self._apply_companion(entry)
        except SyncEntryError as exc:
            logger.warning("%s: %s", entry.label, exc)
            return ApplyResult(
                label=entry.label,
                action=ApplyAction.FAILED,
                error_code=type(exc).__name__,
                error=str(exc),
            )
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("%s: %s", entry.label, exc)
            return ApplyResult(
                label=entry.label,
                action=ApplyAction.FAILED,
                error_code=type(exc).__name__,
                error=str(exc),
            )

        if action is not ApplyAction.UNCHANGED:
            prefix = "[dry-run] " if self.dry_run else ""
            logger.info("%s%s %s -> %s", prefix, action.value, entry.label, entry.source.name)
        return ApplyResult(label=entry.label, action=action)

    def apply_all(self, entries: Iterable[SyncEntry]) -> SyncReport:
        """Apply every entry, collecting failures instead of aborting.

        Dual-format companions are applied after their symlink half and are
        skipped when that half failed. Results keep the input order.
        """
        ordered = list(entries)
        results: dict[int, ApplyResult] = {}
        failed_links: dict[tuple[str, str], str] = {}

        for idx, entry in enumerate(ordered):
            if entry.role is EntryRole.COMPANION:
                continue
            result = self.apply(entry)
            results[idx] = result
            if not result.success:
                failed_links[(entry.target.name, entry.source.name)] = result.error_code or "SyncEntryError"

        for idx, entry in enumerate(ordered):
            if entry.role is not EntryRole.COMPANION:
                continue
            link_error = failed_links.get((entry.target.name, entry.source.name))
            if link_error is not None:
                results[idx] = ApplyResult(
                    label=entry.label,
                    action=ApplyAction.FAILED,
                    error_code=link_error,
                    error=f"Skipped: the symlink half for '{entry.source.name}' failed",
                )
                continue
            results[idx] = self.apply(entry)

        return SyncReport(results=tuple(results[i] for i in range(len(ordered))))


__all__ = [
    "SyncApplier",
    "physical_path",
    "link_text_for",
    "link_points_at",
    "points_into_sources",
    "expected_redirect_block",
    "expected_companion",
]
