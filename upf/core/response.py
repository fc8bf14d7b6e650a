"""
Resolves the result URLs of an upload from the response body.

URL templates may contain $regex:<index>$ placeholders. When the template has
a regex, it is searched in the response body and every placeholder is replaced
by the matching capture group (index 0 is the whole match).
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from upf.core.constants import REGEX_PLACEHOLDER
from upf.core.errors import PatternCompileError, PatternNotFoundError
from upf.core.template import UploaderTemplate
from upf.utils.logger import log


@dataclass
class UploadResponse:
    """Result URLs of one upload."""
    url: str
    additional_urls: Dict[str, str] = field(default_factory=dict)
    # Capture groups that did not take part in the match, their
    # placeholders are left in the URLs as-is
    unmatched_captures: List[int] = field(default_factory=list)

    @property
    def thumbnail_url(self) -> Optional[str]:
        return self.additional_urls.get("thumbnail")

    @property
    def deletion_url(self) -> Optional[str]:
        return self.additional_urls.get("deletion")

    def all_urls(self) -> Dict[str, str]:
        """Primary URL under "url" followed by the secondary URLs."""
        return {"url": self.url, **self.additional_urls}

    @classmethod
    def find(cls, body: str, template: UploaderTemplate) -> 'UploadResponse':
        """Resolve the template URLs against a response body.

        Raises:
            PatternCompileError: the template regex is invalid
            PatternNotFoundError: the regex does not match the body
        """
        url = template.url
        additional_urls = dict(template.additional_urls)
        unmatched = []

        if template.regex is None:
            return cls(url=url, additional_urls=additional_urls)

        try:
            pattern = re.compile(template.regex)
        except re.error as e:
            raise PatternCompileError(template.regex) from e

        match = pattern.search(body)
        if match is None:
            raise PatternNotFoundError(template.regex)

        for index in range(pattern.groups + 1):
            value = match.group(index)
            if value is None:
                log(f"Regex capture {index} was not found", level="warning", category="uploads")
                unmatched.append(index)
                continue
            token = REGEX_PLACEHOLDER.format(index=index)
            url = url.replace(token, value)
            additional_urls = {
                name: target.replace(token, value) for name, target in additional_urls.items()
            }

        return cls(url=url, additional_urls=additional_urls, unmatched_captures=unmatched)


def resolve_urls(body: str, template: UploaderTemplate) -> UploadResponse:
    return UploadResponse.find(body, template)
