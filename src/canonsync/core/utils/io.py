"""File I/O utilities for canonsync.

Single source of truth for safe file access patterns:
- Atomic writes with fsync and rename
- Atomic symlink replacement
- YAML reads with consistent error handling
"""
from __future__ import annotations

import os
import stat
import tempfile
import uuid
from pathlib import Path
from typing import Any, Callable, Optional, TextIO, Union

import yaml

PathLike = Union[str, Path]


def ensure_parent_dir(path: Path) -> None:
    """Ensure the parent directory for ``path`` exists."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def ensure_directory(path: Path, create: bool = True) -> Path:
    """Ensure directory exists.

    Args:
        path: Directory path to check/create
        create: If True, create directory if missing; if False, raise if missing

    Returns:
        Path: The directory path

    Raises:
        FileNotFoundError: If create=False and directory doesn't exist
        NotADirectoryError: If path exists but is not a directory
    """
    path = Path(path)

    if path.exists():
        if not path.is_dir():
            raise NotADirectoryError(f"Path exists but is not a directory: {path}")
        return path

    if create:
        path.mkdir(parents=True, exist_ok=True)
        return path
    raise FileNotFoundError(f"Directory does not exist: {path}")


def atomic_write(
    path: Path,
    write_fn: Callable[[TextIO], None],
    *,
    encoding: str = "utf-8",
) -> None:
    """Write to ``path`` atomically using a temp file + fsync + rename.

    - Parent directory is created if missing
    - Data is written to a temporary file in the same directory
    - File is fsync'd, then atomically replaced
    - Permissions of an existing file are kept; new files get the
      umask-derived default instead of the temp file's 0600
    - Any leftover temp file is cleaned up on failure
    """
    path = Path(path)
    ensure_parent_dir(path)

    tmp_path: Optional[Path] = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding=encoding,
            newline="",
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            tmp_path = Path(f.name)
            write_fn(f)
            f.flush()
            os.fsync(f.fileno())

        os.chmod(tmp_path, _target_mode(path))
        os.replace(str(tmp_path), str(path))
    finally:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()


def _target_mode(path: Path) -> int:
    if path.exists():
        return stat.S_IMODE(path.stat().st_mode)
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def read_text(path: PathLike) -> str:
    """Read a UTF-8 text file keeping its line endings (no newline translation)."""
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def write_text(path: PathLike, content: str) -> None:
    """Atomically write UTF-8 text to ``path``."""

    def _writer(f: TextIO) -> None:
        f.write(content)

    atomic_write(Path(path), _writer)


def atomic_symlink(link_path: Path, link_text: str, *, target_is_directory: bool = False) -> None:
    """Create or replace the symlink at ``link_path`` atomically.

    The link is created under a temporary sibling name and renamed over
    ``link_path`` so readers never observe a missing or half-created entry.
    Callers must make sure ``link_path`` is not a real file or directory.
    """
    link_path = Path(link_path)
    ensure_parent_dir(link_path)
    tmp = link_path.parent / f".{link_path.name}.{uuid.uuid4().hex[:8]}.tmp"
    os.symlink(link_text, tmp, target_is_directory=target_is_directory)
    try:
        os.replace(tmp, link_path)
    except OSError:
        tmp.unlink()
        raise


def read_yaml(path: Path, default: Any = None, *, raise_on_error: bool = False) -> Any:
    """Read YAML from ``path``.

    Returns ``default`` when the file is missing or empty. Parse errors
    propagate when ``raise_on_error`` is set, otherwise ``default`` is returned.
    """
    path = Path(path)
    if not path.exists():
        return default
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError:
        if raise_on_error:
            raise
        return default
    return data if data is not None else default


__all__ = [
    "PathLike",
    "ensure_parent_dir",
    "ensure_directory",
    "atomic_write",
    "read_text",
    "write_text",
    "atomic_symlink",
    "read_yaml",
]
