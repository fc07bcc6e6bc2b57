"""Project root and manifest path resolution."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from canonsync.core.exceptions import CanonsyncError

PROJECT_CONFIG_DIR = ".canonsync"
DEFAULT_MANIFEST = f"{PROJECT_CONFIG_DIR}/manifest.yaml"

ROOT_ENV_VAR = "CANONSYNC_PROJECT_ROOT"
MANIFEST_ENV_VAR = "CANONSYNC_MANIFEST"


class ProjectRootError(CanonsyncError):
    """Raised when the project root cannot be determined."""


def resolve_project_root(start: Optional[Path] = None) -> Path:
    """Resolve the repository root.

    Resolution priority:
    1. ``CANONSYNC_PROJECT_ROOT`` environment variable
    2. Nearest ancestor of ``start`` (default: CWD) containing
       ``.canonsync/`` or ``.git``

    Raises:
        ProjectRootError: If the env var points at a missing path or no
            marker is found
    """
    env_root = os.environ.get(ROOT_ENV_VAR)
    if env_root:
        env_path = Path(env_root).expanduser().resolve()
        if not env_path.is_dir():
            raise ProjectRootError(f"{ROOT_ENV_VAR} points at missing path: {env_path}")
        if env_path.name == PROJECT_CONFIG_DIR:
            raise ProjectRootError(
                f"{ROOT_ENV_VAR} points to the {PROJECT_CONFIG_DIR} directory: {env_path}. "
                "It must point to the project root."
            )
        return env_path

    cwd = (start or Path.cwd()).resolve()
    for candidate in (cwd, *cwd.parents):
        if (candidate / PROJECT_CONFIG_DIR).is_dir() or (candidate / ".git").exists():
            return candidate

    raise ProjectRootError(
        f"Unable to resolve project root from {cwd}. "
        f"Run inside a repository, pass --repo-root, or set {ROOT_ENV_VAR}."
    )


def resolve_manifest_path(repo_root: Path, override: Optional[str] = None) -> Path:
    """Return the manifest path: explicit override, then env var, then default."""
    raw = override or os.environ.get(MANIFEST_ENV_VAR) or DEFAULT_MANIFEST
    path = Path(raw).expanduser()
    return path if path.is_absolute() else repo_root / path


def relative_label(path: Path, repo_root: Path) -> str:
    """POSIX path of ``path`` relative to ``repo_root`` without resolving symlinks."""
    try:
        return Path(os.path.relpath(path, repo_root)).as_posix()
    except ValueError:
        return str(path)


__all__ = [
    "PROJECT_CONFIG_DIR",
    "DEFAULT_MANIFEST",
    "ROOT_ENV_VAR",
    "MANIFEST_ENV_VAR",
    "ProjectRootError",
    "resolve_project_root",
    "resolve_manifest_path",
    "relative_label",
]
