from __future__ import annotations

from typing import Any, Dict, Mapping


class CanonsyncError(Exception):
    """Base exception for canonsync."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class ManifestError(CanonsyncError, ValueError):
    """Raised when the manifest is missing, malformed or inconsistent.

    Manifest errors are fatal: they are raised before any filesystem write.
    """

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        CanonsyncError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class ManifestConflict(ManifestError):
    """Raised when two sources claim the same target path with different content."""


class SyncEntryError(CanonsyncError):
    """Base class for errors scoped to a single sync entry.

    These are collected per entry and never abort unrelated entries.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        source: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if path:
            ctx["path"] = path
        if source:
            ctx["source"] = source
        super().__init__(message, context=ctx)


class PathConflict(SyncEntryError):
    """Raised when a non-symlink occupies a symlink-managed path."""


class RedirectMarkerMissing(SyncEntryError):
    """Raised when a redirect target exists but has no recognizable marker."""


class GenerationError(SyncEntryError):
    """Raised when a dual-format companion cannot be generated."""


__all__ = [
    "CanonsyncError",
    "ManifestError",
    "ManifestConflict",
    "SyncEntryError",
    "PathConflict",
    "RedirectMarkerMissing",
    "GenerationError",
]
