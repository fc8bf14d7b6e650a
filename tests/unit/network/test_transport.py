"""
Tests for upf.network.transport.

Network libraries are mocked; no request leaves the process.
"""

from unittest.mock import Mock, patch

import pycurl
import pytest
import requests

from upf.core.request_builder import UploadRequest
from upf.core.template import Method
from upf.network.transport import (
    CurlTransport,
    RequestsTransport,
    TransportResponse,
    _last_content_type,
    charset_from_content_type,
    get_transport,
)


def _request(method=Method.POST, body=b"payload", headers=None):
    return UploadRequest(
        method=method,
        url="https://host/up",
        headers=headers if headers is not None else {"Authorization": "Bearer x"},
        body=body,
    )


def _http_response(status_code=200, content=b"ok", content_type="text/plain; charset=ISO-8859-1"):
    response = Mock()
    response.status_code = status_code
    response.content = content
    response.headers = {"Content-Type": content_type} if content_type else {}
    return response


class FakeCurl:
    """Stand-in for pycurl.Curl that plays back a canned response."""

    def __init__(self, status_code=200, body=b"", header_lines=(), error=None):
        self.status_code = status_code
        self.body = body
        self.header_lines = list(header_lines)
        self.error = error
        self.options = {}
        self.closed = False

    def setopt(self, option, value):
        self.options[option] = value

    def perform(self):
        if self.error is not None:
            raise self.error
        progress = self.options.get(pycurl.XFERINFOFUNCTION)
        if progress is not None:
            total = len(self.options.get(pycurl.POSTFIELDS, b""))
            progress(0, 0, total, total // 2)
            progress(0, 0, total, total)
        for line in self.header_lines:
            self.options[pycurl.HEADERFUNCTION](line)
        self.options[pycurl.WRITEDATA].write(self.body)

    def getinfo(self, info):
        assert info == pycurl.RESPONSE_CODE
        return self.status_code

    def close(self):
        self.closed = True


class TestRequestsTransport:

    def test_send_with_given_session(self):
        session = Mock()
        session.request.return_value = _http_response(201, b"created")
        transport = RequestsTransport(session=session, timeout=12.5, user_agent="upf-test")

        result = transport.send(_request())

        session.request.assert_called_once_with(
            "POST",
            "https://host/up",
            headers={"User-Agent": "upf-test", "Authorization": "Bearer x"},
            data=b"payload",
            timeout=12.5,
        )
        assert result == TransportResponse(201, b"created", "iso-8859-1")

    def test_template_user_agent_wins(self):
        session = Mock()
        session.request.return_value = _http_response()
        transport = RequestsTransport(session=session)

        transport.send(_request(headers={"User-Agent": "custom/1.0"}))

        _, kwargs = session.request.call_args
        assert kwargs["headers"] == {"User-Agent": "custom/1.0"}

    def test_empty_body_is_sent_as_none(self):
        session = Mock()
        session.request.return_value = _http_response(content_type=None)

        result = RequestsTransport(session=session).send(_request(method=Method.GET, body=b""))

        _, kwargs = session.request.call_args
        assert kwargs["data"] is None
        assert result.encoding is None

    def test_fresh_session_per_request(self):
        with patch("upf.network.transport.requests.Session") as session_cls:
            session = session_cls.return_value.__enter__.return_value
            session.request.return_value = _http_response(200, b"done")

            result = RequestsTransport().send(_request())

        session_cls.assert_called_once_with()
        session_cls.return_value.__exit__.assert_called_once()
        assert result.content == b"done"

    def test_network_errors_propagate(self):
        session = Mock()
        session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(requests.ConnectionError):
            RequestsTransport(session=session).send(_request())


class TestCurlTransport:

    def test_send_sets_request_options(self):
        curl = FakeCurl(status_code=200, body=b"https://files/x",
                        header_lines=[b"HTTP/1.1 200 OK\r\n", b"Content-Type: text/plain; charset=utf-8\r\n"])

        with patch.object(pycurl, "Curl", return_value=curl):
            result = CurlTransport(timeout=2, user_agent="upf-test").send(_request())

        assert result == TransportResponse(200, b"https://files/x", "utf-8")
        assert curl.options[pycurl.URL] == "https://host/up"
        assert curl.options[pycurl.USERAGENT] == "upf-test"
        assert curl.options[pycurl.TIMEOUT_MS] == 2000
        assert curl.options[pycurl.HTTPHEADER] == ["Authorization: Bearer x", "Expect:"]
        assert curl.options[pycurl.POSTFIELDS] == b"payload"
        assert curl.options[pycurl.CUSTOMREQUEST] == "POST"
        assert pycurl.XFERINFOFUNCTION not in curl.options
        assert curl.closed

    def test_get_without_body_sends_no_postfields(self):
        curl = FakeCurl()

        with patch.object(pycurl, "Curl", return_value=curl):
            CurlTransport().send(_request(method=Method.GET, body=b""))

        assert pycurl.POSTFIELDS not in curl.options
        assert pycurl.TIMEOUT_MS not in curl.options
        assert curl.options[pycurl.CUSTOMREQUEST] == "GET"

    def test_progress_callback(self):
        curl = FakeCurl()
        progress = Mock()

        with patch.object(pycurl, "Curl", return_value=curl):
            CurlTransport(on_progress=progress).send(_request(body=b"0123456789"))

        assert curl.options[pycurl.NOPROGRESS] is False
        assert [c.args for c in progress.call_args_list] == [(5, 10), (10, 10)]

    def test_progress_ignores_unknown_total(self):
        progress = Mock()
        transport = CurlTransport(on_progress=progress)

        assert transport._xferinfo_callback(0, 0, 0, 0) == 0
        progress.assert_not_called()

    def test_curl_errors_propagate_and_handle_is_closed(self):
        curl = FakeCurl(error=pycurl.error(7, "Failed to connect"))

        with patch.object(pycurl, "Curl", return_value=curl):
            with pytest.raises(pycurl.error):
                CurlTransport().send(_request())

        assert curl.closed


class TestContentType:

    def test_last_header_block_wins(self):
        lines = [
            b"HTTP/1.1 302 Found\r\n",
            b"Content-Type: text/html; charset=iso-8859-1\r\n",
            b"\r\n",
            b"HTTP/1.1 200 OK\r\n",
            b"content-type: application/json\r\n",
            b"\r\n",
        ]

        assert _last_content_type(lines) == "application/json"

    def test_redirect_content_type_is_not_carried_over(self):
        lines = [
            b"HTTP/1.1 302 Found\r\n",
            b"Content-Type: text/html\r\n",
            b"HTTP/1.1 200 OK\r\n",
        ]

        assert _last_content_type(lines) is None

    @pytest.mark.parametrize("value, expected", [
        ("text/plain; charset=UTF-8", "utf-8"),
        ('text/html; charset="windows-1252"', "windows-1252"),
        ("application/octet-stream", None),
        (None, None),
        ("", None),
    ])
    def test_charset_from_content_type(self, value, expected):
        assert charset_from_content_type(value) == expected


class TestGetTransport:

    def test_by_name(self):
        assert isinstance(get_transport("requests", timeout=3), RequestsTransport)
        curl = get_transport("curl", on_progress=None)
        assert isinstance(curl, CurlTransport)

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown transport 'httpx'"):
            get_transport("httpx")


def test_transport_response_success_range():
    assert TransportResponse(200, b"").is_success
    assert TransportResponse(299, b"").is_success
    assert not TransportResponse(300, b"").is_success
    assert not TransportResponse(500, b"").is_success
