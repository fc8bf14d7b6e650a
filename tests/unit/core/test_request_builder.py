"""
Tests for upf.core.request_builder: header validation and body assembly.
"""

import re

import pytest
from requests.exceptions import InvalidHeader

from upf.core.errors import (
    HeaderValidationError,
    InvalidHeaderName,
    InvalidHeaderValue,
    UnsupportedDataType,
)
from upf.core.request_builder import build_request, validate_headers
from upf.core.template import DataType, Method
from upf.core.upload_service import upload


def _boundary(request) -> bytes:
    match = re.search(r"boundary=(\S+)", request.headers["Content-Type"])
    return match.group(1).encode()


class TestNoBody:

    @pytest.mark.parametrize("payload", [b"", b"x", b"\x00" * 4096])
    def test_body_is_always_empty(self, template_factory, payload):
        template = template_factory(method="GET", data="NoBody", form={"a": "b"})

        request = build_request(template, payload, "a.png")

        assert request.body == b""
        assert request.parts == []
        assert request.method is Method.GET
        assert "Content-Type" not in request.headers

    def test_headers_are_applied_verbatim(self, template_factory):
        template = template_factory(data="NoBody", headers={"Authorization": "Bearer x", "X-Test": "1"})

        request = build_request(template, b"")

        assert request.headers == {"Authorization": "Bearer x", "X-Test": "1"}
        assert request.url == "https://host/up"


class TestMultipart:

    def test_file_part_with_filename(self, template_factory):
        template = template_factory()

        request = build_request(template, bytes([1, 2, 3]), "a.png")

        assert len(request.file_parts) == 1
        part = request.file_parts[0]
        assert part.name == "file"
        assert part.data == bytes([1, 2, 3])
        assert part.filename == "a.png"
        assert part.content_type == "image/png"
        assert b'Content-Disposition: form-data; name="file"; filename="a.png"' in request.body
        assert b"\r\n\r\n\x01\x02\x03\r\n" in request.body

    def test_file_part_without_filename(self, template_factory):
        template = template_factory()

        request = build_request(template, b"payload-bytes")

        assert len(request.file_parts) == 1
        assert request.file_parts[0].filename is None
        assert request.file_parts[0].content_type == "application/octet-stream"
        assert b'Content-Disposition: form-data; name="file"\r\n' in request.body
        assert b"filename=" not in request.body
        assert b"payload-bytes" in request.body

    def test_no_file_part_without_file_form(self, template_factory):
        template = template_factory(file_form=None, form={"key": "value"})

        request = build_request(template, b"PAYLOAD-MARKER", "a.png")

        assert request.file_parts == []
        assert [(p.name, p.data) for p in request.text_parts] == [("key", "value")]
        assert b"PAYLOAD-MARKER" not in request.body
        assert b'name="key"' in request.body

    def test_file_part_comes_first_then_form_in_order(self, template_factory):
        template = template_factory(form={"zeta": "1", "alpha": "2", "mid": "3"})

        request = build_request(template, b"data", "a.txt")

        assert [p.name for p in request.parts] == ["file", "zeta", "alpha", "mid"]
        positions = [request.body.index(f'name="{name}"'.encode())
                     for name in ("file", "zeta", "alpha", "mid")]
        assert positions == sorted(positions)

    def test_content_type_header_matches_body_boundary(self, template_factory):
        template = template_factory(form={"k": "v"})

        request = build_request(template, b"data", "a.txt")

        assert request.headers["Content-Type"].startswith("multipart/form-data; boundary=")
        boundary = _boundary(request)
        assert request.body.startswith(b"--" + boundary + b"\r\n")
        assert request.body.endswith(b"--" + boundary + b"--\r\n")

    def test_empty_multipart_body(self, template_factory):
        template = template_factory(file_form=None)

        request = build_request(template, b"")

        assert request.parts == []
        assert request.body == b"--" + _boundary(request) + b"--\r\n"

    def test_template_content_type_is_kept(self, template_factory):
        template = template_factory(headers={"content-type": "multipart/form-data; boundary=fixed"})

        request = build_request(template, b"data")

        assert request.headers == {"content-type": "multipart/form-data; boundary=fixed"}


class TestUnsupportedDataTypes:

    @pytest.mark.parametrize("data", ["Plain", "FormUrlEncoded", "Json", "Xml"])
    def test_unsupported_data_type_raises(self, template_factory, data):
        template = template_factory(data=data)

        with pytest.raises(UnsupportedDataType) as exc_info:
            build_request(template, b"data", "a.png")

        assert exc_info.value.data_type is DataType(data)
        assert data in str(exc_info.value)


class TestHeaderValidation:

    @pytest.mark.parametrize("name", [
        "Bad:Name", " Leading", "Line\r\nBreak", "", "Bad Name", "X(Y)", "Héader", "X-Token\n",
    ])
    def test_invalid_header_name(self, template_factory, name):
        template = template_factory(headers={name: "value"})

        with pytest.raises(InvalidHeaderName) as exc_info:
            build_request(template, b"data")

        assert exc_info.value.header_name == name
        assert isinstance(exc_info.value.__cause__, InvalidHeader)

    @pytest.mark.parametrize("value", [
        "a\r\nInjected: 1", " leading-space", "tab\nnewline", "日本", "nul\x00byte", "del\x7f",
    ])
    def test_invalid_header_value(self, template_factory, value):
        template = template_factory(headers={"X-Token": value})

        with pytest.raises(InvalidHeaderValue) as exc_info:
            build_request(template, b"data")

        assert exc_info.value.header_name == "X-Token"
        assert value not in str(exc_info.value)

    def test_headers_are_checked_before_the_body(self, template_factory):
        template = template_factory(data="Json", headers={"Bad:Name": "v"})

        with pytest.raises(InvalidHeaderName):
            build_request(template, b"data")

    def test_valid_headers_pass_through(self):
        headers = {
            "Authorization": "Bearer abc",
            "X-Empty": "",
            "X-Tabbed": "a\tb",
            "X-Latin": "caf\u00e9",
            "x-lower_case.~token!": "1",
        }

        assert validate_headers(headers) == headers

    @pytest.mark.parametrize("headers", [
        {"Bad Name": "v"},
        {"X(Y)": "v"},
        {"H\u00e9ader": "v"},
        {"X-Token": "\u65e5\u672c"},
    ])
    def test_non_rfc_headers_are_rejected_before_sending(self, template_factory, fake_transport, headers):
        template = template_factory(headers=headers)

        with pytest.raises(HeaderValidationError):
            upload(template, b"data", transport=fake_transport)

        assert fake_transport.requests == []
