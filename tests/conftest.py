"""
Pytest configuration and fixtures for upf.
Provides shared fixtures, a fake transport and environment isolation.
"""

import pytest
from pathlib import Path
from typing import Any, Dict, List, Optional

from upf.core.template import UploaderTemplate
from upf.network.transport import TransportResponse
from upf.utils import logger as upf_logger
from upf.utils import logging as upf_logging


def _reset_logging() -> None:
    if upf_logging._SINGLETON is not None:
        upf_logging._SINGLETON.close()
    upf_logging._SINGLETON = None
    upf_logger.reset_app_logger()
    upf_logger.set_console_level("warning")


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Point every XDG location at the test's temp dir and reset the loggers."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CONFIG_DIRS", str(tmp_path / "xdg"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("UPF_CONFIG_DIR", raising=False)
    monkeypatch.setattr("upf.utils.system_utils.SYSTEM_CONFIG_DIR", str(tmp_path / "etc-upf"))
    monkeypatch.setattr("upf.utils.system_utils.is_windows", lambda: False)
    monkeypatch.setattr("upf.utils.system_utils.is_macos", lambda: False)
    _reset_logging()
    yield
    _reset_logging()


@pytest.fixture
def config_dir(tmp_path) -> Path:
    """Create $XDG_CONFIG_HOME/upf."""
    path = tmp_path / "config" / "upf"
    path.mkdir(parents=True)
    return path


class FakeTransport:
    """Transport returning a canned response and recording the requests it got."""

    def __init__(self, status_code: int = 200, body: bytes = b"",
                 encoding: Optional[str] = None, error: Optional[Exception] = None):
        self.status_code = status_code
        self.body = body
        self.encoding = encoding
        self.error = error
        self.requests: List[Any] = []

    def send(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return TransportResponse(self.status_code, self.body, self.encoding)


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def template_data() -> Dict[str, Any]:
    """Multipart template used across the tests."""
    return {
        "method": "POST",
        "request_url": "https://host/up",
        "data": "Multipart",
        "file_form": "file",
        "url": "https://host/view",
        "form": {},
        "headers": {},
        "additional_urls": {},
        "tags": [],
    }


def make_template(**overrides) -> UploaderTemplate:
    data = {
        "method": "POST",
        "request_url": "https://host/up",
        "data": "Multipart",
        "file_form": "file",
        "url": "https://host/view",
        "form": {},
        "headers": {},
        "additional_urls": {},
        "tags": [],
    }
    data.update(overrides)
    return UploaderTemplate.from_dict({k: v for k, v in data.items() if v is not None})


@pytest.fixture
def template_factory():
    return make_template


@pytest.fixture
def transport_factory():
    """FakeTransport class, for tests that need a non-default response."""
    return FakeTransport
