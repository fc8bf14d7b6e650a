"""
Exception hierarchy for template loading and uploads.

Every failure is raised as a subclass of UpfError. Wrapped causes are chained
with ``raise ... from exc`` so the CLI can print the whole chain on one line
with format_error_chain().
"""

from http import HTTPStatus
from typing import List, Optional


class UpfError(Exception):
    """Base exception for upf."""
    pass


# Template errors

class TemplateError(UpfError):
    """Base exception for template loading failures."""
    pass


class TemplateOpenError(TemplateError):
    """Raised when a template file cannot be opened."""

    def __init__(self, path: str):
        self.path = path
        super().__init__("Failed to open file")


class TemplateReadError(TemplateError):
    """Raised when a template file was opened but could not be read."""

    def __init__(self, path: str):
        self.path = path
        super().__init__("Failed to read file")


class TemplateParseError(TemplateError):
    """Raised for malformed documents and schema violations."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class TemplateNotFoundError(TemplateError):
    """Raised when no template file exists for a template name."""

    def __init__(self, name: str, directory: str):
        self.name = name
        self.directory = directory
        super().__init__(f"Template '{name}' not found in {directory}")


# Upload errors

class UploadError(UpfError):
    """Base exception for failures during an upload."""
    pass


class HeaderValidationError(UploadError):
    """A template header is not valid on the wire."""

    def __init__(self, message: str, header_name: str):
        self.header_name = header_name
        super().__init__(message)


class InvalidHeaderName(HeaderValidationError):
    def __init__(self, header_name: str):
        super().__init__(f"Invalid header name: {header_name!r}", header_name)


class InvalidHeaderValue(HeaderValidationError):
    def __init__(self, header_name: str):
        # The value is left out on purpose, headers often carry credentials
        super().__init__(f"Invalid header value for {header_name!r}", header_name)


class UnsupportedDataType(UploadError):
    """The template declares a body encoding that has no implementation."""

    def __init__(self, data_type):
        self.data_type = data_type
        name = getattr(data_type, "value", data_type)
        super().__init__(f"Unsupported data type: {name}")


class TransportError(UploadError):
    """The request could not be completed (DNS, connection, TLS...)."""

    def __init__(self, message: str = "Failed to send request"):
        super().__init__(message)


class ResponseStatusError(UploadError):
    """The server answered with a non-success status code."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f'Received "{_describe_status(status_code)}" from server: {body}')


class ResponseDecodeError(UploadError):
    """The response body could not be decoded as text."""

    def __init__(self, message: str = "Failed to parse response"):
        super().__init__(message)


class PatternCompileError(UploadError):
    """The template regex is not a valid pattern."""

    def __init__(self, pattern: str):
        self.pattern = pattern
        super().__init__("Failed to parse regex")


class PatternNotFoundError(UploadError):
    """The template regex did not match the response body."""

    def __init__(self, pattern: str):
        self.pattern = pattern
        super().__init__(f"Regex failed to capture anything: {pattern}")


def _describe_status(status_code: int) -> str:
    try:
        return f"{status_code} {HTTPStatus(status_code).phrase}"
    except ValueError:
        return str(status_code)


def error_chain(exc: BaseException) -> List[BaseException]:
    """Return exc followed by its causes, outermost first."""
    chain = []
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        chain.append(current)
        seen.add(id(current))
        current = current.__cause__
    return chain


def format_error_chain(exc: BaseException) -> str:
    """Render an exception and its causes on one line: ``outer: inner: ...``"""
    parts = []
    for error in error_chain(exc):
        text = str(error).strip()
        parts.append(text or type(error).__name__)
    return ": ".join(parts)
