#!/usr/bin/env python3
"""
upf - an upload program to simplify using file sharing services

Uploads a file (or piped stdin) with a template from the config directory and
prints the resulting URLs.

Templates: $UPF_CONFIG_DIR, $XDG_CONFIG_HOME/upf (~/.config/upf),
$XDG_CONFIG_DIRS/upf (/etc/xdg/upf) or /etc/upf
"""

import argparse
import sys
from contextlib import nullcontext
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv
from tqdm import tqdm

from upf.core.constants import APP_NAME, APP_VERSION, STDIN_FILE_NAME
from upf.core.errors import UpfError, format_error_chain
from upf.core.response import UploadResponse
from upf.core.template_store import TemplateStore
from upf.core.upload_service import upload
from upf.network.transport import get_transport
from upf.utils.config_utils import VALID_TRANSPORTS, load_upload_settings
from upf.utils.logger import install_exception_hook, log, set_console_level
from upf.utils.system_utils import find_config_dir, get_settings_path


class PayloadError(UpfError):
    """The file or stdin could not be read."""
    pass


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description='An upload program to simplify using file sharing services')
    parser.add_argument('template', nargs='?', help='Template to use for the upload')
    parser.add_argument('file', nargs='?', type=Path, help='File to upload (default: stdin)')
    parser.add_argument('-f', '--file-name', help='Filename to upload')
    parser.add_argument('--transport', choices=VALID_TRANSPORTS,
                        help='HTTP client to use (default: from upf.ini, else requests)')
    parser.add_argument('--timeout', type=float,
                        help='Give up after this many seconds (default: no timeout)')
    parser.add_argument('--progress', action='store_true',
                        help='Show an upload progress bar (uses the curl transport)')
    parser.add_argument('--list', action='store_true', help='List available templates and exit')
    parser.add_argument('-v', '--verbose', action='store_true', help='Print info messages')
    parser.add_argument('--debug', action='store_true', help='Print everything')
    parser.add_argument('--version', action='version', version=f'{APP_NAME} {APP_VERSION}')
    return parser


def read_payload(path: Optional[Path], stdin=None) -> Tuple[bytes, str]:
    """Read the payload from a file or from piped stdin.

    Returns:
        (data, file_name) where file_name is the file's base name or "stdin"

    Raises:
        PayloadError: unreadable file, interactive stdin or failed stdin read
    """
    if path is not None:
        try:
            f = open(path, 'rb')
        except OSError as e:
            raise PayloadError("Failed to open file") from e
        with f:
            try:
                data = f.read()
            except OSError as e:
                raise PayloadError("Failed to read file") from e
        return data, path.name

    stdin = stdin if stdin is not None else sys.stdin
    if stdin.isatty():
        raise PayloadError("Supply either a file path or pipe data into stdin")
    try:
        data = stdin.buffer.read()
    except OSError as e:
        raise PayloadError("An error occurred while reading from stdin") from e
    return data, STDIN_FILE_NAME


def print_error(error: BaseException) -> None:
    """Print an error and its causes on one line."""
    print(format_error_chain(error), file=sys.stderr)


def print_response(response: UploadResponse) -> None:
    print(f"URL: {response.url}")
    for name, url in response.additional_urls.items():
        label = name.replace('_', ' ').capitalize()
        print(f"{label} URL: {url}")


def main(argv=None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        set_console_level("trace")
    elif args.verbose:
        set_console_level("info")

    config_dir = find_config_dir()
    if config_dir is None:
        print("Failed to find a valid config directory", file=sys.stderr)
        return 1
    store = TemplateStore(config_dir)

    if args.list:
        for name, tags in store.list_templates():
            print(f"{name} [{', '.join(tags)}]" if tags else name)
        return 0

    if not args.template:
        parser.error("the following arguments are required: template")

    settings = load_upload_settings(get_settings_path(config_dir))
    transport_name = "curl" if args.progress else (args.transport or settings.transport)
    timeout = args.timeout if args.timeout is not None else settings.timeout

    try:
        template = store.load(args.template)
        data, file_name = read_payload(args.file)
    except UpfError as e:
        print_error(e)
        return 1

    if args.file_name:
        file_name = args.file_name

    progress_bar = None
    transport_options = {"timeout": timeout, "user_agent": settings.user_agent}
    if args.progress:
        progress_bar = tqdm(total=len(data), desc=file_name, unit="B", unit_scale=True,
                            unit_divisor=1024, leave=False, file=sys.stderr)

        def on_progress(uploaded: int, total: int) -> None:
            progress_bar.total = total
            progress_bar.n = uploaded
            progress_bar.refresh()

        transport_options["on_progress"] = on_progress

    transport = get_transport(transport_name, **transport_options)
    log(f"Uploading {len(data)} bytes with template {args.template} ({transport_name})",
        level="info", category="uploads")

    try:
        with progress_bar if progress_bar is not None else nullcontext():
            response = upload(template, data, file_name, transport=transport)
    except UpfError as e:
        log(f"Upload with template {args.template} failed: {format_error_chain(e)}",
            level="debug", category="uploads")
        print_error(e)
        return 1

    print_response(response)
    urls = ", ".join(f"{name}={url}" for name, url in response.all_urls().items())
    log(f"Uploaded {file_name} with template {args.template}: {urls}", level="info", category="uploads")
    return 0


def run() -> None:
    install_exception_hook()
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nExiting gracefully...", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
