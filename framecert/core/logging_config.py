"""Root logging setup for framecert runs.

The certification report goes to stdout, so log output is kept on stderr and,
optionally, in a rotating file next to the run artifacts.
"""

from __future__ import annotations

import contextlib
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, List, Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# A long run logs every poll at DEBUG
_DEFAULT_MAX_BYTES = 2 * 1024 * 1024
_DEFAULT_BACKUP_COUNT = 3

_configured = False


def coerce_level(level: Union[int, str]) -> int:
    """Numeric level for ``"debug"``, ``"INFO"``, ``logging.WARNING``, ..."""
    if not isinstance(level, str):
        return int(level)
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level '{level}'")
    return numeric


def _quiet(names: Iterable[str]) -> None:
    for name in names:
        logging.getLogger(name).setLevel(logging.WARNING)


def _detach_handlers(root: logging.Logger) -> None:
    for handler in list(root.handlers):
        root.removeHandler(handler)
        with contextlib.suppress(Exception):
            handler.close()


def _build_handlers(
    level: int,
    console: bool,
    log_file: Optional[Union[str, Path]],
    max_bytes: int,
    backup_count: int,
) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if console:
        handlers.append(logging.StreamHandler(sys.stderr))
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"))

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def configure_logging(
    level: Union[int, str] = logging.INFO,
    *,
    force: bool = False,
    console: bool = True,
    log_file: Optional[Union[str, Path]] = None,
    max_bytes: int = _DEFAULT_MAX_BYTES,
    backup_count: int = _DEFAULT_BACKUP_COUNT,
    suppressed_loggers: Iterable[str] = ("asyncio",),
) -> None:
    """Install the framecert handlers on the root logger.

    Args:
        level: Level name ("info") or number.
        force: Rebuild handlers even when logging was already configured;
            otherwise a second call only changes the level.
        console: Log to stderr.
        log_file: Path of a rotating log file.
        max_bytes: Size at which the log file rotates.
        backup_count: Rotated files to keep.
        suppressed_loggers: Loggers capped at WARNING.
    """
    global _configured
    numeric_level = coerce_level(level)
    root = logging.getLogger()

    if not _configured or force:
        _detach_handlers(root)
        for handler in _build_handlers(numeric_level, console, log_file, max_bytes, backup_count):
            root.addHandler(handler)
        if not root.handlers:
            logging.basicConfig(level=numeric_level, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
        _configured = True

    root.setLevel(numeric_level)
    _quiet(suppressed_loggers)


__all__ = ["configure_logging", "coerce_level", "LOG_FORMAT", "LOG_DATEFMT"]
