"""
Central constants file for upf.
Application info, file locations and the placeholder syntax used by templates.
"""

# Application Info
APP_NAME = "upf"
APP_VERSION = "0.3.0"

# Config discovery
CONFIG_DIR_ENV = "UPF_CONFIG_DIR"
SYSTEM_CONFIG_DIR = "/etc/upf"
DEFAULT_XDG_CONFIG_DIRS = "/etc/xdg"
SETTINGS_FILENAME = "upf.ini"

# Template files
TEMPLATE_EXTENSIONS = (".toml", ".json")
DEFAULT_TEMPLATE_EXTENSION = ".toml"

# Placeholder token replaced by the i-th regex capture group
REGEX_PLACEHOLDER = "$regex:{index}$"

# Names given to the secondary URLs of old-style templates
LEGACY_URL_KEYS = {
    "thumbnail_url": "thumbnail",
    "deletion_url": "deletion",
}

# Network
DEFAULT_TRANSPORT = "requests"
DEFAULT_USER_AGENT = f"{APP_NAME}/{APP_VERSION}"
DEFAULT_FILE_CONTENT_TYPE = "application/octet-stream"
STDIN_FILE_NAME = "stdin"
