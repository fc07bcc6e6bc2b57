from __future__ import annotations

import logging
import sys
from pathlib import Path

from canonsync.core.utils.io import ensure_directory

_CONFIGURED_LOG_PATH: str | None = None
_FILE_HANDLER: logging.Handler | None = None
_STDERR_HANDLER: logging.Handler | None = None
_NULL_HANDLER_INSTALLED: bool = False

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _level_from_name(name: str) -> int:
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.INFO


def _package_logger() -> logging.Logger:
    return logging.getLogger("canonsync")


def configure_stdlib_logging(*, log_path: Path, level: str = "INFO") -> None:
    """Configure canonsync logging to write to ``log_path``.

    Idempotent per-process: if already configured for the same file, no-op.
    """
    global _CONFIGURED_LOG_PATH, _FILE_HANDLER

    resolved = str(Path(log_path).resolve())
    if _CONFIGURED_LOG_PATH == resolved and _FILE_HANDLER is not None:
        return

    ensure_directory(Path(resolved).parent)
    logger = _package_logger()
    logger.setLevel(min(logger.level or logging.WARNING, _level_from_name(level)))

    # Replace the previously installed file handler when switching paths.
    if _FILE_HANDLER is not None:
        logger.removeHandler(_FILE_HANDLER)
        _FILE_HANDLER.close()
        _FILE_HANDLER = None

    fh = logging.FileHandler(resolved, encoding="utf-8")
    fh.setLevel(_level_from_name(level))
    fh.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(fh)

    _FILE_HANDLER = fh
    _CONFIGURED_LOG_PATH = resolved


def enable_verbose_stderr() -> None:
    """Log canonsync DEBUG records to stderr (``--verbose``)."""
    global _STDERR_HANDLER

    if _STDERR_HANDLER is not None:
        return
    logger = _package_logger()
    logger.setLevel(logging.DEBUG)
    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(logging.DEBUG)
    sh.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger.addHandler(sh)
    _STDERR_HANDLER = sh


def reset_stdlib_logging_for_tests() -> None:
    """Test-only: clear configured handlers."""
    global _CONFIGURED_LOG_PATH, _FILE_HANDLER, _STDERR_HANDLER
    logger = _package_logger()
    for h in (_FILE_HANDLER, _STDERR_HANDLER):
        if h is not None:
            logger.removeHandler(h)
            h.close()
    logger.setLevel(logging.NOTSET)
    _CONFIGURED_LOG_PATH = None
    _FILE_HANDLER = None
    _STDERR_HANDLER = None


def suppress_lastresort_handler() -> None:
    """Prevent stdlib logging's lastResort handler from writing to stderr.

    The CLI reports every failed entry itself; without this, WARNING records
    would be echoed a second time by the implicit ``lastResort`` handler and
    would pollute ``--json`` output. Installs a NullHandler on the root logger
    when it has no handlers.
    """
    global _NULL_HANDLER_INSTALLED

    root = logging.getLogger()
    if root.handlers or _NULL_HANDLER_INSTALLED:
        return
    root.addHandler(logging.NullHandler())
    _NULL_HANDLER_INSTALLED = True


__all__ = [
    "configure_stdlib_logging",
    "enable_verbose_stderr",
    "reset_stdlib_logging_for_tests",
    "suppress_lastresort_handler",
]
