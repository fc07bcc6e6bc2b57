"""Redirect marker handling for real-file targets.

A redirect target is a real, possibly IDE-customized file. Only the block
between the markers is owned by canonsync; everything around it is preserved.
"""
from __future__ import annotations

import os
from pathlib import Path

REDIRECT_BEGIN = "<!-- canonsync:redirect:begin -->"
REDIRECT_END = "<!-- canonsync:redirect:end -->"


def render_block(source_name: str, canonical_path: Path, target_path: Path) -> str:
    """Render the marker block pointing from ``target_path`` at ``canonical_path``.

    The reference is relative to the target file's directory so the block is
    stable across checkouts.
    """
    rel = Path(os.path.relpath(canonical_path, target_path.parent)).as_posix()
    return "\n".join(
        [
            REDIRECT_BEGIN,
            f"> Canonical source: `{rel}` ({source_name}).",
            "> Edit the canonical file; this section is regenerated by `canonsync sync`.",
            REDIRECT_END,
        ]
    )


def split_block(text: str) -> tuple[str, str, str] | None:
    """Split text into (prefix, block, suffix) using the redirect markers.

    Returns None when the begin marker is absent or has no matching end
    marker after it.
    """
    start = text.find(REDIRECT_BEGIN)
    if start == -1:
        return None
    end = text.find(REDIRECT_END, start)
    if end == -1:
        return None
    end += len(REDIRECT_END)
    return text[:start], text[start:end], text[end:]


def splice_block(text: str, block: str) -> str | None:
    """Replace the existing marker block in ``text`` with ``block``.

    Returns None when ``text`` has no complete marker block.
    """
    parts = split_block(text)
    if parts is None:
        return None
    prefix, _, suffix = parts
    return prefix + block + suffix


def new_file_content(block: str) -> str:
    return block + "\n"


def strip_block(text: str) -> str | None:
    """Remove the marker block (and one trailing newline) from ``text``."""
    parts = split_block(text)
    if parts is None:
        return None
    prefix, _, suffix = parts
    if suffix.startswith("\n"):
        suffix = suffix[1:]
    return prefix + suffix


__all__ = [
    "REDIRECT_BEGIN",
    "REDIRECT_END",
    "render_block",
    "split_block",
    "splice_block",
    "new_file_content",
    "strip_block",
]
