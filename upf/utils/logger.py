"""
Logging front end for upf.

Every module logs through ``log()`` (or the per-level shortcuts below):

    from upf.utils.logger import log

    log("Loaded template imgur.toml", level="debug", category="templates")
    log("Regex capture 2 was not found", level="warning", category="uploads")

A message fans out to two sinks:

* the rotating log file managed by upf.utils.logging.AppLogger, for
  everything above TRACE that its [LOGGING] settings let through
* stderr, for messages at or above the console threshold. The threshold is
  WARNING unless the CLI lowers it with --verbose (INFO) or --debug (TRACE).
  stdout stays reserved for upload results.

Console lines look like ``14:03:27 WARNING: [uploads] message``; the
``general`` category is not tagged.
"""

from __future__ import annotations

import logging
import sys
import threading
import traceback
from datetime import datetime
from typing import Optional

TRACE = 5  # below DEBUG; console only
logging.addLevelName(TRACE, "TRACE")

LEVEL_MAP = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

_lock = threading.RLock()
_console_level = logging.WARNING
_app_logger = None  # AppLogger, created on first use


def timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


def set_console_level(level: str) -> None:
    """Print messages at ``level`` and above to stderr (unknown names mean warning)."""
    global _console_level
    with _lock:
        _console_level = LEVEL_MAP.get(level.lower(), logging.WARNING)


def _get_app_logger():
    # Imported here, upf.utils.logging pulls in config_utils which logs through us
    global _app_logger
    if _app_logger is None:
        from upf.utils.logging import get_logger
        _app_logger = get_logger()
    return _app_logger


def reset_app_logger() -> None:
    """Forget the file logger; the next message re-reads the settings."""
    global _app_logger
    with _lock:
        _app_logger = None


def _format(message: str, level_name: str, category: str) -> str:
    tag = "" if category == "general" else f"[{category}] "
    return f"{timestamp()} {level_name}: {tag}{message}"


def log(message: str, level: str = "info", category: Optional[str] = None) -> None:
    """
    Log a message to the file log and, above the console threshold, to stderr.

    Args:
        message: Text to log
        level: trace, debug, info, warning (or warn), error or critical.
               Unknown names are treated as info. Trace never reaches the file.
        category: general, templates, network, uploads or config.
                  Categories can be switched off for the file in upf.ini.
    """
    name = level.lower()
    levelno = LEVEL_MAP.get(name, logging.INFO)
    level_name = logging.getLevelName(levelno)
    category = category or "general"
    line = _format(message, level_name, category)

    with _lock:
        if levelno > TRACE:
            try:
                app_logger = _get_app_logger()
                if app_logger.should_emit_file(category, levelno):
                    app_logger.log_to_file(line, levelno, category)
            except Exception:
                # A broken log file must never take an upload down with it
                pass

        if levelno >= _console_level:
            print(line, file=sys.stderr, flush=True)


def trace(message: str, category: Optional[str] = None) -> None:
    log(message, "trace", category)


def debug(message: str, category: Optional[str] = None) -> None:
    log(message, "debug", category)


def info(message: str, category: Optional[str] = None) -> None:
    log(message, "info", category)


def warning(message: str, category: Optional[str] = None) -> None:
    log(message, "warning", category)


def error(message: str, category: Optional[str] = None) -> None:
    log(message, "error", category)


def critical(message: str, category: Optional[str] = None) -> None:
    log(message, "critical", category)


def install_exception_hook() -> None:
    """Print uncaught exceptions in full and record them in the log file.

    The previous ``sys.excepthook`` is still called afterwards.
    """
    previous_hook = sys.excepthook

    def _hook(exc_type, exc_value, exc_tb):
        details = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
        rule = "-" * 70
        sys.stderr.write(f"\n{rule}\nupf crashed, please report this:\n{details}{rule}\n")
        sys.stderr.flush()
        try:
            critical(f"Uncaught {exc_type.__name__}: {exc_value}")
        except Exception:
            pass
        previous_hook(exc_type, exc_value, exc_tb)

    sys.excepthook = _hook
