"""
Turns a template and a payload into a transport-agnostic request.

The request carries the final wire body, so every transport sends exactly the
same bytes. Header validation and body encoding happen here, before any
network activity.
"""

import mimetypes
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from requests.exceptions import InvalidHeader
from requests.utils import check_header_validity
from urllib3.fields import RequestField
from urllib3.filepost import encode_multipart_formdata

from upf.core.constants import DEFAULT_FILE_CONTENT_TYPE
from upf.core.errors import InvalidHeaderName, InvalidHeaderValue, UnsupportedDataType
from upf.core.template import DataType, Method, UploaderTemplate
from upf.utils.logger import log


@dataclass
class MultipartPart:
    """One part of a multipart body."""
    name: str
    data: Union[bytes, str]
    filename: Optional[str] = None
    content_type: Optional[str] = None
    is_file: bool = False

    def to_request_field(self) -> RequestField:
        request_field = RequestField(name=self.name, data=self.data, filename=self.filename)
        request_field.make_multipart(content_type=self.content_type)
        return request_field


@dataclass
class UploadRequest:
    """Everything a transport needs to send an upload."""
    method: Method
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    parts: List[MultipartPart] = field(default_factory=list)

    @property
    def file_parts(self) -> List[MultipartPart]:
        return [part for part in self.parts if part.is_file]

    @property
    def text_parts(self) -> List[MultipartPart]:
        return [part for part in self.parts if not part.is_file]


# RFC 7230 token
_HEADER_NAME = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
# RFC 7230 field-value characters, obs-text included
_HEADER_VALUE = re.compile(r"[\t\x20-\x7e\x80-\xff]*")


def validate_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """Check every template header on its own.

    Raises:
        InvalidHeaderName: a name is not a valid header token
        InvalidHeaderValue: a value contains forbidden characters
    """
    validated = {}
    for name, value in headers.items():
        try:
            check_header_validity((name, ""))
            if not _HEADER_NAME.fullmatch(name):
                raise InvalidHeader(f"Header name {name!r} is not a token")
        except InvalidHeader as e:
            raise InvalidHeaderName(name) from e
        try:
            check_header_validity(("X-Upf-Header", value))
            if not _HEADER_VALUE.fullmatch(value):
                raise InvalidHeader(f"Header value for {name!r} has forbidden characters")
        except InvalidHeader as e:
            raise InvalidHeaderValue(name) from e
        validated[name] = value
    return validated


def build_multipart_parts(template: UploaderTemplate, data: bytes,
                          file_name: Optional[str] = None) -> List[MultipartPart]:
    """File part first (only when the template names a file field), then form fields in order."""
    parts = []
    if template.file_form is not None:
        content_type = DEFAULT_FILE_CONTENT_TYPE
        if file_name:
            content_type = mimetypes.guess_type(file_name)[0] or DEFAULT_FILE_CONTENT_TYPE
        parts.append(MultipartPart(
            name=template.file_form,
            data=bytes(data),
            filename=file_name,
            content_type=content_type,
            is_file=True,
        ))
    elif data:
        log(f"Template has no file_form, {len(data)} bytes of payload will not be sent",
            level="debug", category="uploads")

    for key, value in template.form.items():
        parts.append(MultipartPart(name=key, data=value))
    return parts


def build_request(template: UploaderTemplate, data: bytes,
                  file_name: Optional[str] = None) -> UploadRequest:
    """Build the request for one upload.

    Args:
        template: Loaded uploader template
        data: Payload bytes
        file_name: Optional file name sent with the file part

    Returns:
        UploadRequest ready for a transport

    Raises:
        HeaderValidationError: a template header is invalid
        UnsupportedDataType: the template body encoding is not implemented
    """
    headers = validate_headers(template.headers)
    request = UploadRequest(method=template.method, url=template.request_url, headers=headers)

    if template.data is DataType.NO_BODY:
        pass
    elif template.data is DataType.MULTIPART:
        request.parts = build_multipart_parts(template, data, file_name)
        body, content_type = encode_multipart_formdata(
            [part.to_request_field() for part in request.parts])
        request.body = body
        if not any(name.lower() == "content-type" for name in headers):
            request.headers["Content-Type"] = content_type
    else:
        raise UnsupportedDataType(template.data)

    log(f"Built {template.method.value} request for {template.request_url} "
        f"({len(request.body)} byte body)", level="trace", category="network")
    return request
