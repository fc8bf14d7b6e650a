"""
Platform and path helpers for locating upf's configuration and data directories.

Config directory search order (first existing directory wins):
1. $UPF_CONFIG_DIR
2. $XDG_CONFIG_HOME/upf (or ~/.config/upf)
3. each entry of $XDG_CONFIG_DIRS + /upf (or /etc/xdg/upf)
4. /etc/upf
"""

import os
import platform
from pathlib import Path
from typing import List, Optional

from upf.core.constants import (
    APP_NAME,
    CONFIG_DIR_ENV,
    DEFAULT_XDG_CONFIG_DIRS,
    SETTINGS_FILENAME,
    SYSTEM_CONFIG_DIR,
)


def is_windows() -> bool:
    """Check if running on Windows."""
    return platform.system() == 'Windows'


def is_macos() -> bool:
    """Check if running on macOS."""
    return platform.system() == 'Darwin'


def config_dir_candidates(app_name: str = APP_NAME) -> List[Path]:
    """
    List the directories that may hold templates, in search order.

    Args:
        app_name: Name of the application

    Returns:
        List of candidate paths (they may not exist)
    """
    candidates = []

    override = os.getenv(CONFIG_DIR_ENV)
    if override:
        candidates.append(Path(override))

    config_home = os.getenv('XDG_CONFIG_HOME')
    if config_home:
        candidates.append(Path(config_home) / app_name)
    elif os.getenv('HOME'):
        candidates.append(Path(os.environ['HOME']) / '.config' / app_name)

    config_dirs = os.getenv('XDG_CONFIG_DIRS') or DEFAULT_XDG_CONFIG_DIRS
    for entry in config_dirs.split(os.pathsep):
        if entry:
            candidates.append(Path(entry) / app_name)

    candidates.append(Path(SYSTEM_CONFIG_DIR))
    return candidates


def find_config_dir(app_name: str = APP_NAME) -> Optional[Path]:
    """Return the first existing config directory, or None."""
    for candidate in config_dir_candidates(app_name):
        if candidate.is_dir():
            return candidate
    return None


def get_settings_path(config_dir: Optional[Path] = None) -> Optional[Path]:
    """Return the path of upf.ini inside the config dir, if there is a config dir."""
    if config_dir is None:
        config_dir = find_config_dir()
    if config_dir is None:
        return None
    return Path(config_dir) / SETTINGS_FILENAME


def get_app_data_directory(app_name: str = APP_NAME) -> Path:
    """
    Get the appropriate application data directory for the current platform.

    On Windows: %APPDATA%/upf
    On macOS: ~/Library/Application Support/upf
    On Linux: $XDG_DATA_HOME/upf (~/.local/share/upf)

    Args:
        app_name: Name of the application

    Returns:
        Path: Application data directory (created if it doesn't exist)
    """
    if is_windows():
        base = Path(os.getenv('APPDATA', Path.home() / 'AppData' / 'Roaming'))
    elif is_macos():
        base = Path.home() / 'Library' / 'Application Support'
    else:  # Linux and other Unix-like
        base = Path(os.getenv('XDG_DATA_HOME') or Path.home() / '.local' / 'share')

    app_dir = base / app_name
    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir
