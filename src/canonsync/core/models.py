"""Propagation data models.

Provides immutable dataclasses for canonical sources, targets, resolved
sync entries and the results produced by the applier and drift reporter.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping


class ContentKind(str, Enum):
    RULE_TEXT = "rule-text"
    COMMAND_PROMPT = "command-prompt"
    SKILL_BUNDLE = "skill-bundle"


class Strategy(str, Enum):
    REAL_FILE_REDIRECT = "real-file-redirect"
    FILE_SYMLINK = "file-symlink"
    DIRECTORY_SYMLINK = "directory-symlink"
    DUAL_FORMAT = "dual-format"


class EntryRole(str, Enum):
    REDIRECT = "redirect"
    LINK = "link"
    COMPANION = "companion"


class ApplyAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    REMOVED = "removed"
    FAILED = "failed"


class DriftStatus(str, Enum):
    IN_SYNC = "in-sync"
    MISSING = "missing"
    STALE = "stale"
    UNEXPECTED = "unexpected"
    CONFLICT = "conflict"


@dataclass(frozen=True, slots=True)
class CanonicalSource:
    """A canonical file or directory that derived copies must match.

    Attributes:
        name: Logical name (e.g. ``rules``, ``commands/speckit.analyze``)
        path: Absolute path under the canonical root
        kind: Content kind
    """

    name: str
    path: Path
    kind: ContentKind

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def stem(self) -> str:
        return self.path.stem

    @property
    def basename(self) -> str:
        """Last segment of the logical name."""
        return self.name.rsplit("/", 1)[-1]


@dataclass(frozen=True, slots=True)
class SyncPolicy:
    """How a target consumes one content kind.

    Attributes:
        strategy: Propagation strategy
        path: Location inside the target root (file, directory or link path
            depending on the strategy)
        filename: Per-source filename pattern for directory-style strategies
        format: Companion format for ``dual-format``
        sources: Optional allow-list of source names
    """

    strategy: Strategy
    path: str
    filename: str | None = None
    format: str | None = None
    sources: tuple[str, ...] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SyncPolicy:
        sources = data.get("sources")
        return cls(
            strategy=Strategy(data["strategy"]),
            path=str(data.get("path", "")),
            filename=data.get("filename"),
            format=data.get("format"),
            sources=tuple(str(s) for s in sources) if sources is not None else None,
        )

    def accepts(self, source: CanonicalSource) -> bool:
        if self.sources is None:
            return True
        return source.name in self.sources or source.name.split("/", 1)[0] in self.sources

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"strategy": self.strategy.value, "path": self.path}
        if self.filename is not None:
            result["filename"] = self.filename
        if self.format is not None:
            result["format"] = self.format
        if self.sources is not None:
            result["sources"] = list(self.sources)
        return result


@dataclass(frozen=True, slots=True)
class TargetDirectory:
    """An IDE-specific directory that consumes canonical content.

    Attributes:
        name: IDE name (e.g. ``.cline``)
        root: Absolute root path
        policies: One policy per consumed content kind
    """

    name: str
    root: Path
    policies: Mapping[ContentKind, SyncPolicy] = field(default_factory=dict, hash=False)

    def policy_for(self, kind: ContentKind) -> SyncPolicy | None:
        return self.policies.get(kind)


@dataclass(frozen=True, slots=True)
class SyncEntry:
    """Resolved pairing of one canonical source with one target path.

    Attributes:
        source: Canonical source
        target: Target directory
        relative_path: Path inside the target root (POSIX form)
        role: What lives at the path (redirect file, symlink or companion)
        policy: Policy that produced the entry
    """

    source: CanonicalSource
    target: TargetDirectory
    relative_path: str
    role: EntryRole
    policy: SyncPolicy

    @property
    def key(self) -> tuple[str, str]:
        return (self.target.name, self.relative_path)

    @property
    def path(self) -> Path:
        return self.target.root / self.relative_path

    @property
    def label(self) -> str:
        return f"{self.target.name}/{self.relative_path}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target.name,
            "path": self.relative_path,
            "source": self.source.name,
            "kind": self.source.kind.value,
            "strategy": self.policy.strategy.value,
            "role": self.role.value,
        }


@dataclass(frozen=True, slots=True)
class ApplyResult:
    """Result of applying one entry.

    Attributes:
        label: ``<target>/<relative path>`` or a repository-relative path
        action: What the applier did
        error_code: Exception class name when failed
        error: Error message when failed
    """

    label: str
    action: ApplyAction
    error_code: str | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.action is not ApplyAction.FAILED

    @property
    def changed(self) -> bool:
        return self.action in (ApplyAction.CREATED, ApplyAction.UPDATED, ApplyAction.REMOVED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.label,
            "action": self.action.value,
            "error_code": self.error_code,
            "error": self.error,
        }


@dataclass(frozen=True, slots=True)
class DriftRecord:
    """Classification of one managed path.

    Attributes:
        label: ``<target>/<relative path>`` or a repository-relative path for
            unexpected artefacts
        status: Drift classification
        source: Canonical source name (None for unexpected artefacts)
        detail: Human-readable explanation
        error_code: Per-entry error code for ``conflict`` records
    """

    label: str
    status: DriftStatus
    source: str | None = None
    detail: str | None = None
    error_code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.label,
            "status": self.status.value,
            "source": self.source,
            "detail": self.detail,
            "error_code": self.error_code,
        }


@dataclass(frozen=True, slots=True)
class SyncReport:
    results: tuple[ApplyResult, ...] = ()

    @property
    def ok(self) -> bool:
        return all(r.success for r in self.results)

    @property
    def failed(self) -> tuple[ApplyResult, ...]:
        return tuple(r for r in self.results if not r.success)

    @property
    def changed(self) -> tuple[ApplyResult, ...]:
        return tuple(r for r in self.results if r.changed)


@dataclass(frozen=True, slots=True)
class DriftReport:
    records: tuple[DriftRecord, ...] = ()

    @property
    def ok(self) -> bool:
        return all(r.status is DriftStatus.IN_SYNC for r in self.records)

    @property
    def drifted(self) -> tuple[DriftRecord, ...]:
        return tuple(r for r in self.records if r.status is not DriftStatus.IN_SYNC)

    @property
    def unexpected(self) -> tuple[DriftRecord, ...]:
        return tuple(r for r in self.records if r.status is DriftStatus.UNEXPECTED)

    def counts(self) -> dict[str, int]:
        out = {s.value: 0 for s in DriftStatus}
        for r in self.records:
            out[r.status.value] += 1
        return out


__all__ = [
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
]
