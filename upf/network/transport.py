"""
HTTP transports used to send uploads.

A transport takes a fully built UploadRequest and returns the status code and
raw body. Network failures are raised as the underlying library's exception;
upf.core.upload_service wraps them in TransportError.

- RequestsTransport: requests.Session based (default)
- CurlTransport: pycurl based, with upload progress callbacks
"""

from dataclasses import dataclass
from email.message import Message
from io import BytesIO
from typing import Callable, List, Optional, Protocol

import pycurl
import requests

from upf.core.constants import DEFAULT_USER_AGENT
from upf.core.request_builder import UploadRequest
from upf.core.template import Method
from upf.utils.logger import log


@dataclass
class TransportResponse:
    """Raw response of one request."""
    status_code: int
    content: bytes
    encoding: Optional[str] = None  # charset declared by the server, if any

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


class Transport(Protocol):
    """Interface for sending an upload request."""

    def send(self, request: UploadRequest) -> TransportResponse:
        """Send the request and return the response. Raises on network failure."""
        ...


def charset_from_content_type(content_type: Optional[str]) -> Optional[str]:
    """Extract the charset parameter of a Content-Type header value."""
    if not content_type:
        return None
    message = Message()
    message["content-type"] = content_type
    return message.get_content_charset()


class RequestsTransport:
    """Sends requests with a requests.Session."""

    def __init__(self, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None,
                 user_agent: str = DEFAULT_USER_AGENT):
        """
        Args:
            session: Session to reuse; a fresh one is opened per request otherwise
            timeout: Connect/read timeout in seconds (None = wait forever)
            user_agent: Default User-Agent, template headers override it
        """
        self.session = session
        self.timeout = timeout
        self.user_agent = user_agent

    def send(self, request: UploadRequest) -> TransportResponse:
        if self.session is not None:
            return self._send(self.session, request)
        with requests.Session() as session:
            return self._send(session, request)

    def _send(self, session: requests.Session, request: UploadRequest) -> TransportResponse:
        headers = {"User-Agent": self.user_agent}
        headers.update(request.headers)

        log(f"{request.method.value} {request.url}", level="debug", category="network")
        response = session.request(
            request.method.value,
            request.url,
            headers=headers,
            data=request.body or None,
            timeout=self.timeout,
        )
        log(f"Received {response.status_code} ({len(response.content)} bytes)",
            level="debug", category="network")
        return TransportResponse(
            status_code=response.status_code,
            content=response.content,
            encoding=charset_from_content_type(response.headers.get("Content-Type")),
        )


class CurlTransport:
    """pycurl-based transport with upload progress reporting."""

    def __init__(self, timeout: Optional[float] = None,
                 on_progress: Optional[Callable[[int, int], None]] = None,
                 user_agent: str = DEFAULT_USER_AGENT):
        """
        Args:
            timeout: Total time limit in seconds (None = unlimited)
            on_progress: Optional progress callback (uploaded_bytes, total_bytes)
            user_agent: Default User-Agent, template headers override it
        """
        self.timeout = timeout
        self.on_progress = on_progress
        self.user_agent = user_agent

    def _xferinfo_callback(self, download_total, downloaded, upload_total, uploaded):
        """pycurl progress callback. Returns 0 to continue."""
        if self.on_progress and upload_total > 0:
            self.on_progress(uploaded, upload_total)
        return 0

    def send(self, request: UploadRequest) -> TransportResponse:
        curl = pycurl.Curl()
        response_buffer = BytesIO()
        header_lines: List[bytes] = []

        try:
            curl.setopt(pycurl.URL, request.url)
            curl.setopt(pycurl.WRITEDATA, response_buffer)
            curl.setopt(pycurl.HEADERFUNCTION, header_lines.append)
            curl.setopt(pycurl.FOLLOWLOCATION, True)
            curl.setopt(pycurl.USERAGENT, self.user_agent)

            # Optional total timeout (None = unlimited)
            if self.timeout:
                curl.setopt(pycurl.TIMEOUT_MS, int(self.timeout * 1000))

            # Empty "Expect:" stops curl from waiting for 100-continue
            headers = [f"{name}: {value}" for name, value in request.headers.items()]
            curl.setopt(pycurl.HTTPHEADER, headers + ["Expect:"])

            if request.body or request.method in (Method.POST, Method.PUT, Method.PATCH):
                curl.setopt(pycurl.POSTFIELDS, request.body)
            curl.setopt(pycurl.CUSTOMREQUEST, request.method.value)

            if self.on_progress:
                curl.setopt(pycurl.NOPROGRESS, False)
                curl.setopt(pycurl.XFERINFOFUNCTION, self._xferinfo_callback)

            log(f"{request.method.value} {request.url}", level="debug", category="network")
            curl.perform()
            status_code = curl.getinfo(pycurl.RESPONSE_CODE)
        finally:
            curl.close()

        content = response_buffer.getvalue()
        log(f"Received {status_code} ({len(content)} bytes)", level="debug", category="network")
        return TransportResponse(
            status_code=status_code,
            content=content,
            encoding=charset_from_content_type(_last_content_type(header_lines)),
        )


def _last_content_type(header_lines: List[bytes]) -> Optional[str]:
    """Content-Type of the final response (redirects produce several header blocks)."""
    content_type = None
    for raw in header_lines:
        line = raw.decode("iso-8859-1").strip()
        if line.upper().startswith("HTTP/"):
            content_type = None
        elif ":" in line:
            name, value = line.split(":", 1)
            if name.strip().lower() == "content-type":
                content_type = value.strip()
    return content_type


TRANSPORTS = {
    "requests": RequestsTransport,
    "curl": CurlTransport,
}


def get_transport(name: str, **kwargs) -> Transport:
    """Create a transport by name ("requests" or "curl").

    Raises:
        ValueError: unknown transport name
    """
    try:
        transport_cls = TRANSPORTS[name]
    except KeyError:
        raise ValueError(f"Unknown transport '{name}', expected one of: {', '.join(TRANSPORTS)}") from None
    return transport_cls(**kwargs)
