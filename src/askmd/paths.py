"""Shared paths for askmd state."""

from __future__ import annotations

import os
from pathlib import Path


ASKMD_DIR_NAME = ".askmd"
CONFIG_FILENAME = "config.yaml"
SESSION_FILENAME = "session.md"


def askmd_home() -> Path:
    """Return the askmd state directory, honouring ASKMD_HOME."""
    override = os.getenv("ASKMD_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ASKMD_DIR_NAME


def ensure_askmd_dir() -> Path:
    """Ensure the askmd state directory exists and return its path."""
    path = askmd_home()
    path.mkdir(parents=True, exist_ok=True)
    return path


def config_path() -> Path:
    return askmd_home() / CONFIG_FILENAME


def logs_dir() -> Path:
    return askmd_home() / "logs"
