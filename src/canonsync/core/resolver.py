"""Manifest resolver.

Maps every canonical source onto the representation each target requires,
producing the full, deduplicated list of sync entries.
"""
from __future__ import annotations

import logging
import posixpath
from pathlib import Path

from canonsync.core.exceptions import ManifestConflict, ManifestError
from canonsync.core.manifest import Manifest
from canonsync.core.models import (
    CanonicalSource,
    EntryRole,
    Strategy,
    SyncEntry,
    SyncPolicy,
    TargetDirectory,
)
from canonsync.core.transforms import get_transform

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "{filename}"


def _format(pattern: str, source: CanonicalSource) -> str:
    try:
        return pattern.format(name=source.basename, stem=source.stem, filename=source.filename)
    except (KeyError, IndexError, ValueError) as exc:
        raise ManifestError(
            f"Invalid path pattern '{pattern}': {exc}",
            context={"source": source.name},
        ) from exc


def _normalize(target: TargetDirectory, raw: str) -> str:
    rel = posixpath.normpath(raw.replace("\\", "/"))
    if rel in (".", "") or rel.startswith("../") or rel == ".." or posixpath.isabs(rel):
        raise ManifestError(
            f"Target '{target.name}' resolves to unsafe path '{raw}'",
            context={"target": target.name, "path": raw},
        )
    return rel


class ManifestResolver:
    """Resolve a manifest into sync entries."""

    def __init__(self, manifest: Manifest) -> None:
        self.manifest = manifest

    def _entries_for(
        self,
        source: CanonicalSource,
        target: TargetDirectory,
        policy: SyncPolicy,
    ) -> list[SyncEntry]:
        strategy = policy.strategy

        if strategy is Strategy.REAL_FILE_REDIRECT:
            rel = _normalize(target, _format(policy.path, source))
            return [SyncEntry(source, target, rel, EntryRole.REDIRECT, policy)]

        if strategy is Strategy.DIRECTORY_SYMLINK:
            rel = _normalize(target, _format(policy.path, source))
            return [SyncEntry(source, target, rel, EntryRole.LINK, policy)]

        filename = _format(policy.filename or DEFAULT_FILENAME, source)
        link_rel = _normalize(target, posixpath.join(policy.path or ".", filename))
        entries = [SyncEntry(source, target, link_rel, EntryRole.LINK, policy)]

        if strategy is Strategy.DUAL_FORMAT:
            transform = get_transform(policy.format)
            companion = posixpath.join(posixpath.dirname(link_rel), transform.companion_filename(source))
            entries.append(
                SyncEntry(source, target, _normalize(target, companion), EntryRole.COMPANION, policy)
            )
        return entries

    def _check_not_canonical(self, entry: SyncEntry) -> None:
        path = entry.path.parent.resolve() / entry.path.name
        for source in self.manifest.sources:
            if path == source.path or path.is_relative_to(source.path):
                raise ManifestError(
                    f"Entry {entry.label} would write into canonical source '{source.name}'",
                    context={"entry": entry.label, "source": source.name},
                )

    def _check_not_nested(self, entries: list[SyncEntry]) -> None:
        """Reject entries that would be written through another entry's symlink."""
        links = {e.path: e for e in entries if e.role is EntryRole.LINK}
        for entry in entries:
            for parent in entry.path.parents:
                link = links.get(parent)
                if link is None:
                    continue
                raise ManifestConflict(
                    f"Entry {entry.label} lies beneath the symlink {link.label} "
                    f"('{link.source.name}') and would be written into canonical content",
                    context={
                        "path": entry.label,
                        "link": link.label,
                        "sources": [link.source.name, entry.source.name],
                    },
                )

    def resolve(self) -> list[SyncEntry]:
        """Return the entries that should exist, sorted by (target, path).

        Raises:
            ManifestConflict: If two different sources or roles claim one path
                or an entry lies beneath another entry's symlink
            ManifestError: If a pattern or path is invalid
        """
        by_key: dict[tuple[str, str], SyncEntry] = {}
        by_path: dict[Path, SyncEntry] = {}

        for target in self.manifest.targets:
            for source in self.manifest.sources:
                policy = target.policy_for(source.kind)
                if policy is None or not policy.accepts(source):
                    continue
                for entry in self._entries_for(source, target, policy):
                    self._check_not_canonical(entry)
                    existing = by_key.get(entry.key) or by_path.get(entry.path)
                    if existing is not None:
                        if existing.source.name == entry.source.name and existing.role is entry.role:
                            continue
                        raise ManifestConflict(
                            f"Conflicting entries for {entry.label}: "
                            f"'{existing.source.name}' ({existing.role.value}) vs "
                            f"'{entry.source.name}' ({entry.role.value})",
                            context={
                                "path": entry.label,
                                "sources": [existing.source.name, entry.source.name],
                            },
                        )
                    by_key[entry.key] = entry
                    by_path[entry.path] = entry

        entries = sorted(by_key.values(), key=lambda e: e.key)
        self._check_not_nested(entries)
        logger.debug("Resolved %d sync entries", len(entries))
        return entries


def resolve_entries(manifest: Manifest) -> list[SyncEntry]:
    return ManifestResolver(manifest).resolve()


__all__ = ["ManifestResolver", "resolve_entries"]
