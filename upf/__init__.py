"""upf - upload files to file sharing services described by templates.

    from upf import UploaderTemplate, upload

    template = UploaderTemplate.from_file("~/.config/upf/catbox.toml")
    response = upload(template, data, "image.png")
    print(response.url)
"""

from upf.core.constants import APP_VERSION as __version__
from upf.core.errors import (
    UpfError,
    TemplateError,
    TemplateOpenError,
    TemplateReadError,
    TemplateParseError,
    TemplateNotFoundError,
    UploadError,
    HeaderValidationError,
    InvalidHeaderName,
    InvalidHeaderValue,
    UnsupportedDataType,
    TransportError,
    ResponseStatusError,
    ResponseDecodeError,
    PatternCompileError,
    PatternNotFoundError,
    format_error_chain,
)
from upf.core.template import DataType, Method, UploaderTemplate
from upf.core.template_store import TemplateStore
from upf.core.request_builder import MultipartPart, UploadRequest, build_request
from upf.core.response import UploadResponse, resolve_urls
from upf.core.upload_service import upload
