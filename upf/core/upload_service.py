"""
Upload orchestration: build request, send it, resolve the result URLs.
"""

from typing import Optional

from upf.core.errors import ResponseDecodeError, ResponseStatusError, TransportError
from upf.core.request_builder import build_request
from upf.core.response import UploadResponse
from upf.core.template import UploaderTemplate
from upf.utils.logger import log


def decode_body(content: bytes, encoding: Optional[str] = None) -> str:
    """Decode a response body with its declared charset (UTF-8 by default).

    Raises:
        ResponseDecodeError: unknown charset or undecodable bytes
    """
    try:
        return content.decode(encoding or "utf-8")
    except (UnicodeDecodeError, LookupError) as e:
        raise ResponseDecodeError() from e


def upload(template: UploaderTemplate, data: bytes, file_name: Optional[str] = None,
           transport=None) -> UploadResponse:
    """Upload data using template and return the resolved URLs.

    Args:
        template: Loaded uploader template
        data: Payload bytes
        file_name: Optional file name sent with the file part
        transport: Object with send(UploadRequest) -> TransportResponse;
                   a RequestsTransport is used when omitted

    Returns:
        UploadResponse

    Raises:
        HeaderValidationError: invalid template header (nothing is sent)
        UnsupportedDataType: body encoding not implemented (nothing is sent)
        TransportError: the request could not be completed
        ResponseStatusError: non-2xx response
        ResponseDecodeError: response body is not valid text
        PatternCompileError / PatternNotFoundError: regex problems
    """
    request = build_request(template, data, file_name)

    if transport is None:
        from upf.network.transport import RequestsTransport
        transport = RequestsTransport()

    try:
        response = transport.send(request)
    except Exception as e:
        raise TransportError() from e

    if not response.is_success:
        try:
            body = response.content.decode(response.encoding or "utf-8", errors="replace")
        except LookupError:
            body = response.content.decode("utf-8", errors="replace")
        raise ResponseStatusError(response.status_code, body)

    body = decode_body(response.content, response.encoding)
    result = UploadResponse.find(body, template)
    log(f"Upload to {template.request_url} finished: {result.url}", level="debug", category="uploads")
    return result
