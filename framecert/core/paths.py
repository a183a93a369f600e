"""Centralized path constants for framecert."""

from __future__ import annotations

import os
from pathlib import Path

# User-specific state (allows running from read-only project directories)
_USER_STATE_ENV = os.environ.get("FRAMECERT_STATE_DIR")
USER_STATE_DIR = Path(_USER_STATE_ENV).expanduser() if _USER_STATE_ENV else (Path.home() / ".framecert")
USER_LOGS_DIR = USER_STATE_DIR / "logs"

# Default config file looked up when the CLI gets no --config
DEFAULT_CONFIG_PATH = USER_STATE_DIR / "config.txt"


def ensure_directories() -> None:
    """Create necessary directories if they don't exist."""

    USER_STATE_DIR.mkdir(parents=True, exist_ok=True)
    USER_LOGS_DIR.mkdir(parents=True, exist_ok=True)


__all__ = [
    'USER_STATE_DIR',
    'USER_LOGS_DIR',
    'DEFAULT_CONFIG_PATH',
    'ensure_directories',
]
