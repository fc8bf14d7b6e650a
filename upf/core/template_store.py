"""
Template lookup in the config directory.

Templates live as <name>.toml (or <name>.json) files directly inside the
directory found by upf.utils.system_utils.find_config_dir().
"""

from pathlib import Path
from typing import List, Tuple, Union

from upf.core.constants import DEFAULT_TEMPLATE_EXTENSION, TEMPLATE_EXTENSIONS
from upf.core.errors import TemplateError, TemplateNotFoundError, format_error_chain
from upf.core.template import UploaderTemplate
from upf.utils.logger import log


class TemplateStore:
    """Loads and lists the templates of one config directory."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def path_for(self, name: str) -> Path:
        """Map a template name to its file: 'imgur' -> <dir>/imgur.toml."""
        path = self.directory / name
        if path.suffix.lower() not in TEMPLATE_EXTENSIONS:
            path = path.with_name(path.name + DEFAULT_TEMPLATE_EXTENSION)
        return path

    def load(self, name: str) -> UploaderTemplate:
        """Load a template by name.

        Falls back to <name>.json when no <name>.toml exists.

        Raises:
            TemplateNotFoundError: no file exists for the name
            TemplateError: the file exists but could not be loaded
        """
        path = self.path_for(name)
        if not path.exists() and path.suffix == DEFAULT_TEMPLATE_EXTENSION:
            json_path = path.with_suffix(".json")
            if json_path.exists():
                path = json_path
        if not path.exists():
            raise TemplateNotFoundError(name, str(self.directory))

        template = UploaderTemplate.from_file(path)
        log(f"Loaded template {path}", level="debug", category="templates")
        return template

    def list_templates(self) -> List[Tuple[str, List[str]]]:
        """Return (name, tags) for every loadable template, sorted by name.

        Broken template files are logged and skipped.
        """
        result = {}
        if not self.directory.is_dir():
            return []

        files = sorted(self.directory.iterdir(), key=lambda p: (p.stem, p.suffix.lower() != DEFAULT_TEMPLATE_EXTENSION))
        for path in files:
            if not path.is_file() or path.suffix.lower() not in TEMPLATE_EXTENSIONS:
                continue
            if path.stem in result:
                # <name>.toml wins over <name>.json, matching load()
                continue
            try:
                template = UploaderTemplate.from_file(path)
            except TemplateError as e:
                log(f"Skipping template {path}: {format_error_chain(e)}",
                    level="warning", category="templates")
                continue
            result[path.stem] = list(template.tags)

        return sorted(result.items())
