"""
canonsync - keep AI IDE configuration directories in sync with canonical sources.

Canonical rules, slash-commands and skills are mirrored into IDE-specific
directories (.cline, .cursor, .claude, .gemini, ...) as redirect files,
symlinks, or symlink + generated companion pairs.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
