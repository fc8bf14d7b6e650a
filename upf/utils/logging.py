"""
Log file for upf.

Messages passed to upf.utils.logger.log() end up in {app data dir}/logs/upf.log
(``$XDG_DATA_HOME/upf/logs`` on Linux). The file is configured by the
[LOGGING] section of upf.ini:

    [LOGGING]
    enabled = true
    rotation = daily          ; daily | size
    max_bytes = 10485760      ; size rotation only
    backup_count = 7
    compress = true           ; gzip rotated files
    level_file = INFO
    filename = upf.log
    cats_file_network = false ; one switch per category

Console lines start with HH:MM:SS; that prefix is replaced by a full date and
time in the file.
"""

from __future__ import annotations

import gzip
import logging
import os
import re
import shutil
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from upf.core.constants import APP_NAME
from upf.utils.config_utils import read_section
from upf.utils.system_utils import get_app_data_directory, get_settings_path

CATEGORIES = ("general", "templates", "network", "uploads", "config")

_SINGLETON: Optional["AppLogger"] = None


def get_logger() -> "AppLogger":
    """Return the process-wide AppLogger, built from the discovered upf.ini."""
    global _SINGLETON
    if _SINGLETON is None:
        _SINGLETON = AppLogger()
    return _SINGLETON


def _gzip_namer(name: str) -> str:
    return name + ".gz"


def _gzip_rotator(source: str, dest: str) -> None:
    try:
        with open(source, "rb") as f_in, gzip.open(dest, "wb") as f_out:
            shutil.copyfileobj(f_in, f_out)
        os.remove(source)
    except OSError:
        # Rotation is retried at the next rollover
        pass


def _as_bool(value: str) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _as_int(value: str, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class LogSettings:
    """Normalized [LOGGING] section."""
    enabled: bool = True
    rotation: str = "daily"
    backup_count: int = 7
    compress: bool = True
    max_bytes: int = 10 * 1024 * 1024
    level_file: int = logging.INFO
    filename: str = "upf.log"
    categories: Dict[str, bool] = field(default_factory=lambda: {cat: True for cat in CATEGORIES})

    @classmethod
    def from_section(cls, raw: Dict[str, str]) -> 'LogSettings':
        defaults = cls()
        rotation = raw["rotation"].strip().lower()
        level = logging.getLevelName(raw["level_file"].strip().upper())
        return cls(
            enabled=_as_bool(raw["enabled"]),
            rotation=rotation if rotation in ("daily", "size") else defaults.rotation,
            backup_count=_as_int(raw["backup_count"], defaults.backup_count),
            compress=_as_bool(raw["compress"]),
            max_bytes=_as_int(raw["max_bytes"], defaults.max_bytes),
            # getLevelName returns a string for unknown names; TRACE never reaches the file
            level_file=level if isinstance(level, int) and level >= logging.DEBUG else defaults.level_file,
            filename=raw["filename"].strip() or defaults.filename,
            categories={cat: _as_bool(raw[f"cats_file_{cat}"]) for cat in CATEGORIES},
        )


class AppLogger:
    """Owns the rotating file handler of the "upf" logger."""

    SECTION = "LOGGING"

    # Raw defaults, also the keys read from upf.ini
    DEFAULTS = {
        "enabled": "true",
        "rotation": "daily",
        "backup_count": "7",
        "compress": "true",
        "max_bytes": str(10 * 1024 * 1024),
        "level_file": "INFO",
        "filename": "upf.log",
        **{f"cats_file_{cat}": "true" for cat in CATEGORIES},
    }

    _CONSOLE_TIME = re.compile(r"^\d{2}:\d{2}:\d{2}\s+")

    def __init__(self, settings_path: Optional[Path] = None, logs_dir: Optional[Path] = None):
        """
        Args:
            settings_path: upf.ini to read; the one in the config dir when omitted
            logs_dir: Directory of the log file; {app data dir}/logs when omitted
        """
        if settings_path is None:
            settings_path = get_settings_path()
        self.logs_dir = Path(logs_dir) if logs_dir is not None else get_app_data_directory() / "logs"
        self.settings = LogSettings.from_section(read_section(settings_path, self.SECTION, self.DEFAULTS))

        self._logger = logging.getLogger(APP_NAME)
        self._logger.setLevel(logging.DEBUG)
        self._logger.propagate = False
        self._handler = self._open_handler()

    def _open_handler(self) -> Optional[logging.Handler]:
        if not self.settings.enabled:
            return None

        path = self.get_current_log_path()
        try:
            if self.settings.rotation == "size":
                handler = RotatingFileHandler(path, maxBytes=self.settings.max_bytes,
                                              backupCount=self.settings.backup_count, encoding="utf-8")
            else:
                handler = TimedRotatingFileHandler(path, when="midnight",
                                                   backupCount=self.settings.backup_count, encoding="utf-8")
        except OSError:
            # Unwritable data dir: run without a log file
            return None

        if self.settings.compress:
            handler.namer = _gzip_namer
            handler.rotator = _gzip_rotator
        handler.setLevel(self.settings.level_file)
        handler.setFormatter(logging.Formatter("%(asctime)s %(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
        self._logger.addHandler(handler)
        return handler

    def close(self) -> None:
        if self._handler is not None:
            self._logger.removeHandler(self._handler)
            self._handler.close()
            self._handler = None

    def get_logs_dir(self) -> str:
        try:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            pass
        return str(self.logs_dir)

    def get_current_log_path(self) -> str:
        return os.path.join(self.get_logs_dir(), self.settings.filename)

    def get_settings(self) -> Dict[str, Any]:
        """Settings as a flat dict using the upf.ini key names."""
        s = self.settings
        result: Dict[str, Any] = {
            "enabled": s.enabled,
            "rotation": s.rotation,
            "backup_count": s.backup_count,
            "compress": s.compress,
            "max_bytes": s.max_bytes,
            "level_file": logging.getLevelName(s.level_file),
            "filename": s.filename,
        }
        result.update({f"cats_file_{cat}": enabled for cat, enabled in s.categories.items()})
        return result

    def should_emit_file(self, category: str, level: int) -> bool:
        if self._handler is None or level < self.settings.level_file:
            return False
        return self.settings.categories.get(category.lower(), True)

    def log_to_file(self, message: str, level: int = logging.INFO, category: str = "general") -> None:
        if self.should_emit_file(category, level):
            self._logger.log(level, self._CONSOLE_TIME.sub("", message, count=1))

    def read_current_log(self) -> str:
        if self._handler is not None:
            self._handler.flush()
        path = self.get_current_log_path()
        if not os.path.exists(path):
            return ""
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return f.read()
