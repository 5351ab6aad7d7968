"""Filesystem path helpers for safelaunch state."""

from __future__ import annotations

import os
from pathlib import Path

STATE_DIR_ENV = "SAFELAUNCH_STATE_DIR"


def state_dir() -> Path:
    """Return the directory used for persistent safelaunch state.

    The location defaults to ``~/.safelaunch`` but can be overridden via the
    ``SAFELAUNCH_STATE_DIR`` environment variable. The path is expanded and
    resolved so callers always receive an absolute location.
    """

    override = os.environ.get(STATE_DIR_ENV)
    if override:
        return Path(override).expanduser().resolve()
    return Path.home() / ".safelaunch"
