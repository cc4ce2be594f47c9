from __future__ import annotations

import argparse
import logging
from pathlib import Path

from rich.console import Console

from scriptorium.cli.commands import (
    config_cmd,
    detect_cmd,
    entries_cmd,
    init_cmd,
    ocr_cmd,
    web_cmd,
)
from scriptorium.cli.context import CLIContext
from scriptorium.core.config import load_paths, load_settings
from scriptorium.core.errors import ScriptoriumError
from scriptorium.core.logging import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scriptorium",
        description="Scriptorium OCR transcription CLI",
    )
    parser.add_argument(
        "--project-root",
        type=Path,
        default=Path.cwd(),
        help="Project root to use for .scriptorium data (default: current working directory)",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0)

    subparsers = parser.add_subparsers(dest="command", required=True)
    init_cmd.register(subparsers)
    ocr_cmd.register(subparsers)
    detect_cmd.register(subparsers)
    entries_cmd.register(subparsers)
    config_cmd.register(subparsers)
    web_cmd.register(subparsers)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    console = Console()

    paths = load_paths(args.project_root)
    ctx = CLIContext(paths=paths, console=console, settings=load_settings())

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 2

    try:
        return handler(args, ctx)
    except ScriptoriumError as exc:
        logger.error(str(exc))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
