"""
codex_app/paths.py -- Path resolution for frozen and development modes.

Handles sys._MEIPASS detection for PyInstaller bundles and uses
platformdirs for the user data and media directories.
"""

from __future__ import annotations

import os
import sys

from platformdirs import user_data_dir

_APP_NAME = "Codex"
_APP_AUTHOR = "Codex"


def is_frozen() -> bool:
    """Return True if running from a PyInstaller bundle."""
    return getattr(sys, "frozen", False) and hasattr(sys, "_MEIPASS")


def get_user_data_dir() -> str:
    """Return the platform-appropriate user data directory."""
    path = user_data_dir(_APP_NAME, _APP_AUTHOR)
    os.makedirs(path, exist_ok=True)
    return path


def get_project_root() -> str:
    """Return the world directory the encyclopedia is stored in.

    ``CODEX_PROJECT_ROOT`` overrides the default.  In frozen mode the
    default is the user data directory; in dev mode it is the repository
    root.
    """
    override = os.environ.get("CODEX_PROJECT_ROOT")
    if override:
        return os.path.abspath(override)
    if is_frozen():
        return get_user_data_dir()
    return os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def get_media_dir() -> str:
    """Return the directory uploaded media are copied into."""
    path = os.path.join(get_user_data_dir(), "media")
    os.makedirs(path, exist_ok=True)
    return path
