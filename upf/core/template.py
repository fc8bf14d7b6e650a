"""
Uploader templates: the declarative description of an upload target.

A template names the HTTP method, the endpoint, how the body is encoded and
how the result URLs are derived from the response. Templates are stored as
TOML (native format) or JSON files:

    method = "POST"
    request_url = "https://example.com/upload"
    data = "Multipart"
    file_form = "file"
    regex = '"id":"(\\w+)"'
    url = "https://example.com/$regex:1$"
    tags = ["images"]

    [form]
    expires = "24h"

    [headers]
    Authorization = "Bearer abc"

    [additional_urls]
    deletion = "https://example.com/delete/$regex:1$"
"""

import json
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import tomli_w

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from upf.core.constants import LEGACY_URL_KEYS
from upf.core.errors import (
    TemplateOpenError,
    TemplateParseError,
    TemplateReadError,
)


class Method(Enum):
    """HTTP methods a template may use."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class DataType(Enum):
    """Request body encodings. Only NO_BODY and MULTIPART are implemented."""
    NO_BODY = "NoBody"
    PLAIN = "Plain"
    MULTIPART = "Multipart"
    FORM_URL_ENCODED = "FormUrlEncoded"
    JSON = "Json"
    XML = "Xml"


_REQUIRED_FIELDS = ("method", "request_url", "data", "form", "headers", "url", "tags")
_OPTIONAL_FIELDS = ("file_form", "regex")
# additional_urls is required unless the legacy thumbnail_url/deletion_url keys are used
_KNOWN_FIELDS = (frozenset(_REQUIRED_FIELDS + _OPTIONAL_FIELDS + ("additional_urls",))
                 | frozenset(LEGACY_URL_KEYS))


def _frozen(mapping: Optional[Mapping[str, str]] = None) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class UploaderTemplate:
    """Parsed uploader template.

    Read-only once built: the mappings are MappingProxyType views and tags is a tuple.
    """

    method: Method
    request_url: str
    data: DataType
    url: str
    form: Mapping[str, str] = field(default_factory=_frozen)
    file_form: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=_frozen)
    regex: Optional[str] = None
    additional_urls: Mapping[str, str] = field(default_factory=_frozen)
    tags: Tuple[str, ...] = ()

    def __post_init__(self):
        for name in ("form", "headers", "additional_urls"):
            object.__setattr__(self, name, _frozen(getattr(self, name)))
        object.__setattr__(self, "tags", tuple(self.tags))

    @property
    def thumbnail_url(self) -> Optional[str]:
        return self.additional_urls.get("thumbnail")

    @property
    def deletion_url(self) -> Optional[str]:
        return self.additional_urls.get("deletion")

    @classmethod
    def from_dict(cls, data: Any) -> 'UploaderTemplate':
        """Create an UploaderTemplate from a parsed document.

        Raises:
            TemplateParseError: missing or unknown fields, wrong types, unknown enum values
        """
        if not isinstance(data, dict):
            raise TemplateParseError(f"Template must be a table, got {type(data).__name__}")

        unknown = sorted(str(key) for key in data if key not in _KNOWN_FIELDS)
        if unknown:
            raise TemplateParseError(f"Unknown field(s): {', '.join(unknown)}")

        legacy = any(key in data for key in LEGACY_URL_KEYS)
        required = _REQUIRED_FIELDS if legacy else _REQUIRED_FIELDS + ("additional_urls",)
        for key in required:
            if key not in data:
                raise TemplateParseError(f"Missing required field '{key}'")

        additional_urls = _string_mapping(data, "additional_urls") if "additional_urls" in data else {}
        for legacy_key, name in LEGACY_URL_KEYS.items():
            value = _optional_string(data, legacy_key)
            if value is None:
                continue
            if name in additional_urls:
                raise TemplateParseError(
                    f"Field '{legacy_key}' conflicts with additional_urls.{name}")
            additional_urls[name] = value

        return cls(
            method=_enum_value(Method, data, "method"),
            request_url=_string(data, "request_url"),
            data=_enum_value(DataType, data, "data"),
            url=_string(data, "url"),
            form=_string_mapping(data, "form"),
            file_form=_optional_string(data, "file_form"),
            headers=_string_mapping(data, "headers"),
            regex=_optional_string(data, "regex"),
            additional_urls=additional_urls,
            tags=_string_list(data, "tags"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a plain dictionary. Unset optional fields are left out."""
        result: Dict[str, Any] = {
            "method": self.method.value,
            "request_url": self.request_url,
            "data": self.data.value,
        }
        if self.file_form is not None:
            result["file_form"] = self.file_form
        if self.regex is not None:
            result["regex"] = self.regex
        result["url"] = self.url
        result["tags"] = list(self.tags)
        result["form"] = dict(self.form)
        result["headers"] = dict(self.headers)
        result["additional_urls"] = dict(self.additional_urls)
        return result

    @classmethod
    def loads(cls, text: str, fmt: str = "toml") -> 'UploaderTemplate':
        """Parse a template document.

        Args:
            text: Document contents
            fmt: "toml" or "json"

        Raises:
            TemplateParseError: malformed document or schema violation
        """
        if fmt not in ("toml", "json"):
            raise ValueError(f"Unknown template format: {fmt}")
        try:
            document = json.loads(text) if fmt == "json" else tomllib.loads(text)
            return cls.from_dict(document)
        except (ValueError, TypeError, TemplateParseError) as e:
            # TOMLDecodeError and JSONDecodeError are ValueErrors
            raise TemplateParseError(f"Failed to parse {fmt}") from e

    def dumps(self, fmt: str = "toml") -> str:
        """Serialize to a TOML or JSON document."""
        if fmt == "json":
            return json.dumps(self.to_dict(), indent=2) + "\n"
        if fmt == "toml":
            return tomli_w.dumps(self.to_dict())
        raise ValueError(f"Unknown template format: {fmt}")

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'UploaderTemplate':
        """Load a template file. The format is picked from the file suffix.

        Raises:
            TemplateOpenError: the file could not be opened
            TemplateReadError: the file could not be read as UTF-8 text
            TemplateParseError: malformed document or schema violation
        """
        path = Path(path)
        try:
            f = open(path, "r", encoding="utf-8")
        except OSError as e:
            raise TemplateOpenError(str(path)) from e

        with f:
            try:
                contents = f.read()
            except (OSError, UnicodeDecodeError) as e:
                raise TemplateReadError(str(path)) from e

        return cls.loads(contents, fmt=format_for_path(path))

    def save(self, path: Union[str, Path]) -> None:
        """Write the template to path, in the format matching its suffix."""
        path = Path(path)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.dumps(format_for_path(path)))


def format_for_path(path: Union[str, Path]) -> str:
    """Return "json" for .json files and "toml" for everything else."""
    return "json" if Path(path).suffix.lower() == ".json" else "toml"


# Field validation helpers

def _string(data: Dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise TemplateParseError(f"Field '{key}' must be a string, got {type(value).__name__}")
    return value


def _optional_string(data: Dict[str, Any], key: str) -> Optional[str]:
    if data.get(key) is None:
        return None
    return _string(data, key)


def _string_mapping(data: Dict[str, Any], key: str) -> Dict[str, str]:
    value = data[key]
    if not isinstance(value, dict):
        raise TemplateParseError(f"Field '{key}' must be a table, got {type(value).__name__}")
    result = {}
    for name, item in value.items():
        if not isinstance(item, str):
            raise TemplateParseError(
                f"Field '{key}.{name}' must be a string, got {type(item).__name__}")
        result[str(name)] = item
    return result


def _string_list(data: Dict[str, Any], key: str) -> Tuple[str, ...]:
    value = data[key]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise TemplateParseError(f"Field '{key}' must be a list of strings")
    return tuple(value)


def _enum_value(enum_cls, data: Dict[str, Any], key: str):
    raw = _string(data, key)
    try:
        return enum_cls(raw)
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise TemplateParseError(f"Invalid {key} '{raw}', expected one of: {choices}") from None
