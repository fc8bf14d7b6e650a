#!/usr/bin/env python3
"""
Configuration utilities for upf
Reads the optional upf.ini settings file found in the config directory
"""

import configparser
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from upf.core.constants import DEFAULT_TRANSPORT, DEFAULT_USER_AGENT
from upf.utils.logger import log


VALID_TRANSPORTS = ("requests", "curl")


@dataclass
class UploadSettings:
    """[UPLOAD] section of upf.ini."""
    transport: str = DEFAULT_TRANSPORT
    timeout: Optional[float] = None  # None = wait forever
    user_agent: str = DEFAULT_USER_AGENT


def read_section(path: Optional[Path], section: str, defaults: Dict[str, str]) -> Dict[str, str]:
    """Read one INI section on top of defaults.

    Missing files, missing sections and unreadable files all yield the defaults.
    Keys not present in defaults are ignored.

    Args:
        path: Path to the INI file (may be None)
        section: Section name, e.g. "LOGGING"
        defaults: Default values, also the whitelist of keys

    Returns:
        Dictionary of string values
    """
    data = dict(defaults)
    if path is None or not Path(path).exists():
        return data

    cfg = configparser.ConfigParser()
    try:
        cfg.read(path, encoding="utf-8")
    except (configparser.Error, OSError, UnicodeDecodeError):
        return data

    if not cfg.has_section(section):
        return data
    for key in defaults:
        if cfg.has_option(section, key):
            data[key] = cfg.get(section, key, raw=True)
    return data


def load_upload_settings(path: Optional[Path]) -> UploadSettings:
    """Load [UPLOAD] settings, falling back to defaults for invalid values.

    Args:
        path: Path to upf.ini (may be None)

    Returns:
        UploadSettings
    """
    defaults = UploadSettings()
    raw = read_section(path, "UPLOAD", {
        "transport": defaults.transport,
        "timeout": "",
        "user_agent": defaults.user_agent,
    })

    transport = raw["transport"].strip().lower() or DEFAULT_TRANSPORT
    if transport not in VALID_TRANSPORTS:
        log(f"Invalid transport '{transport}' in {path}. Using {DEFAULT_TRANSPORT}.",
            level="warning", category="config")
        transport = DEFAULT_TRANSPORT

    timeout = None
    timeout_raw = raw["timeout"].strip()
    if timeout_raw:
        try:
            timeout = float(timeout_raw)
            if timeout <= 0:
                raise ValueError(timeout_raw)
        except ValueError:
            log(f"Invalid timeout '{timeout_raw}' in {path}. Uploads will not time out.",
                level="warning", category="config")
            timeout = None

    user_agent = raw["user_agent"].strip() or DEFAULT_USER_AGENT

    return UploadSettings(transport=transport, timeout=timeout, user_agent=user_agent)
