"""Manifest loading.

Loads the propagation manifest (``.canonsync/manifest.yaml`` by default),
validates it against the bundled JSON Schema and turns it into the
canonical sources and target directories the resolver consumes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from canonsync.core.exceptions import ManifestError
from canonsync.core.models import (
    CanonicalSource,
    ContentKind,
    Strategy,
    SyncPolicy,
    TargetDirectory,
)
from canonsync.core.schemas import validate_payload_safe
from canonsync.core.transforms import TRANSFORMS
from canonsync.core.utils.paths import resolve_manifest_path

logger = logging.getLogger(__name__)

DEFAULT_IGNORE = (".git", "node_modules", ".venv", "venv", "__pycache__")


@dataclass(frozen=True, slots=True)
class ManifestSettings:
    """Engine settings from the ``settings`` block.

    Attributes:
        link_style: ``relative`` or ``absolute`` symlink targets
        ignore: Directory names skipped by the drift scan
        log_level: Level for the file log handler
        log_file: Optional log file, relative to the repository root
    """

    link_style: str = "relative"
    ignore: tuple[str, ...] = DEFAULT_IGNORE
    log_level: str = "INFO"
    log_file: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ManifestSettings:
        logging_cfg = data.get("logging") or {}
        ignore = data.get("ignore")
        return cls(
            link_style=data.get("link_style", "relative"),
            ignore=tuple(ignore) if ignore is not None else DEFAULT_IGNORE,
            log_level=logging_cfg.get("level", "INFO"),
            log_file=logging_cfg.get("file"),
        )


@dataclass(frozen=True, slots=True)
class Manifest:
    """Fully loaded manifest.

    Passed explicitly through resolver, applier and reporter.
    """

    repo_root: Path
    path: Path
    canonical_root: Path
    sources: tuple[CanonicalSource, ...]
    targets: tuple[TargetDirectory, ...]
    settings: ManifestSettings = field(default_factory=ManifestSettings)


class ManifestConfig:
    """Load and validate the propagation manifest."""

    def __init__(self, repo_root: Path, manifest_path: Path | str | None = None) -> None:
        """Initialize manifest config.

        Args:
            repo_root: Path to repository root
            manifest_path: Optional manifest override (absolute or
                repo-relative); defaults to ``CANONSYNC_MANIFEST`` or
                ``.canonsync/manifest.yaml``
        """
        self.repo_root = Path(repo_root).resolve()
        self.manifest_path = resolve_manifest_path(
            self.repo_root, str(manifest_path) if manifest_path else None
        )
        self._data: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data

        if not self.manifest_path.exists():
            raise ManifestError(
                f"Manifest not found: {self.manifest_path}",
                context={"manifest": str(self.manifest_path)},
            )

        try:
            data = yaml.safe_load(self.manifest_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ManifestError(
                f"Manifest is not valid YAML: {exc}",
                context={"manifest": str(self.manifest_path)},
            ) from exc

        errors = validate_payload_safe(data, "manifest.schema")
        if errors:
            raise ManifestError(
                f"Manifest failed schema validation ({len(errors)} error(s)): {errors[0]}",
                context={"manifest": str(self.manifest_path), "errors": errors},
            )

        self._data = data
        return self._data

    def load(self) -> Manifest:
        """Load the manifest.

        Raises:
            ManifestError: If the manifest is missing, malformed or refers to
                unsafe or missing paths
        """
        data = self._load()
        canonical_root = self._canonical_root(data)
        sources = self._load_sources(data, canonical_root)
        targets = self._load_targets(data, sources)
        settings = ManifestSettings.from_dict(data.get("settings") or {})
        logger.debug(
            "Loaded manifest %s: %d source(s), %d target(s)",
            self.manifest_path,
            len(sources),
            len(targets),
        )
        return Manifest(
            repo_root=self.repo_root,
            path=self.manifest_path,
            canonical_root=canonical_root,
            sources=sources,
            targets=targets,
            settings=settings,
        )

    # ------------------------------------------------------------------
    # Path validation
    # ------------------------------------------------------------------
    def _safe_path(self, raw: str, base: Path, what: str) -> Path:
        """Resolve ``raw`` against ``base`` refusing absolute, ``~`` or escaping paths."""
        path_obj = Path(raw)
        if path_obj.is_absolute():
            raise ManifestError(f"{what} has unsafe path '{raw}' (must be relative).")
        if raw.startswith("~"):
            raise ManifestError(f"{what} has unsafe path '{raw}' (must not start with '~').")

        resolved = (base / path_obj).resolve()
        if not resolved.is_relative_to(self.repo_root):
            raise ManifestError(f"{what} has unsafe path '{raw}' (escapes repo root).")
        return resolved

    def _canonical_root(self, data: dict[str, Any]) -> Path:
        raw = str(data["canonical"].get("root", "."))
        root = self._safe_path(raw, self.repo_root, "Canonical root")
        if not root.is_dir():
            raise ManifestError(f"Canonical root does not exist: {root}")
        return root

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------
    def _load_sources(self, data: dict[str, Any], canonical_root: Path) -> tuple[CanonicalSource, ...]:
        sources: list[CanonicalSource] = []
        for item in data["canonical"].get("sources") or []:
            name = item["name"]
            kind = ContentKind(item["kind"])
            what = f"Canonical source '{name}'"
            path = self._safe_path(str(item["path"]), canonical_root, what)
            if not path.is_relative_to(canonical_root):
                raise ManifestError(f"{what} is outside the canonical root: {path}")
            if not path.exists():
                raise ManifestError(f"{what} does not exist: {path}")

            if kind is ContentKind.SKILL_BUNDLE and not path.is_dir():
                raise ManifestError(f"{what} must be a directory (skill bundle): {path}")
            if kind is ContentKind.RULE_TEXT and not path.is_file():
                raise ManifestError(f"{what} must be a file (rule text): {path}")

            if kind is ContentKind.COMMAND_PROMPT and path.is_dir():
                prompts = sorted(p for p in path.glob("*.md") if p.is_file())
                if not prompts:
                    logger.warning("%s: no *.md command prompts under %s", what, path)
                for prompt in prompts:
                    sources.append(CanonicalSource(name=f"{name}/{prompt.stem}", path=prompt, kind=kind))
            else:
                sources.append(CanonicalSource(name=name, path=path, kind=kind))

        seen: set[str] = set()
        for source in sources:
            if source.name in seen:
                raise ManifestError(f"Duplicate canonical source name: {source.name}")
            seen.add(source.name)
        return tuple(sources)

    # ------------------------------------------------------------------
    # Targets
    # ------------------------------------------------------------------
    def _load_targets(
        self,
        data: dict[str, Any],
        sources: tuple[CanonicalSource, ...],
    ) -> tuple[TargetDirectory, ...]:
        source_names = {s.name for s in sources} | {s.name.split("/", 1)[0] for s in sources}
        targets: list[TargetDirectory] = []
        seen: set[str] = set()

        for item in data.get("targets") or []:
            name = item["name"]
            what = f"Target '{name}'"
            if name in seen:
                raise ManifestError(f"Duplicate target name: {name}")
            seen.add(name)

            root = self._safe_path(str(item.get("root", name)), self.repo_root, what)
            for source in sources:
                if source.path.is_dir() and root.is_relative_to(source.path):
                    raise ManifestError(f"{what} root is inside canonical source '{source.name}': {root}")

            policies: dict[ContentKind, SyncPolicy] = {}
            for kind_name, raw_policy in (item.get("policies") or {}).items():
                kind = ContentKind(kind_name)
                policy = SyncPolicy.from_dict(raw_policy)
                self._validate_policy(what, kind, policy, source_names)
                policies[kind] = policy

            targets.append(TargetDirectory(name=name, root=root, policies=policies))
        return tuple(targets)

    def _validate_policy(
        self,
        what: str,
        kind: ContentKind,
        policy: SyncPolicy,
        source_names: set[str],
    ) -> None:
        if policy.strategy is Strategy.DUAL_FORMAT:
            if kind is ContentKind.SKILL_BUNDLE:
                raise ManifestError(f"{what}: dual-format cannot be used for {kind.value}")
            if policy.format not in TRANSFORMS:
                known = ", ".join(sorted(TRANSFORMS))
                raise ManifestError(
                    f"{what}: dual-format policy for {kind.value} needs a known format "
                    f"(got {policy.format!r}; known: {known})"
                )
        elif policy.format is not None:
            raise ManifestError(f"{what}: 'format' is only valid for dual-format policies")

        if policy.strategy in (Strategy.REAL_FILE_REDIRECT, Strategy.DIRECTORY_SYMLINK) and not policy.path:
            raise ManifestError(f"{what}: {policy.strategy.value} policy for {kind.value} needs a path")

        for name in policy.sources or ():
            if name not in source_names:
                raise ManifestError(f"{what}: policy for {kind.value} references unknown source '{name}'")


def load_manifest(repo_root: Path, manifest_path: Path | str | None = None) -> Manifest:
    """Convenience wrapper around :class:`ManifestConfig`."""
    return ManifestConfig(repo_root, manifest_path).load()


__all__ = ["DEFAULT_IGNORE", "Manifest", "ManifestConfig", "ManifestSettings", "load_manifest"]
