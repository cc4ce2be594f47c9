from __future__ import annotations

import argparse
from pathlib import Path

from scriptorium.domain.models.resource import PageContext

DEFAULT_PAGE_ID = "cli"


def add_page_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("url", help="Address of the page or resource")
    parser.add_argument("--page-id", default=DEFAULT_PAGE_ID, help="Identifier of the browsing context")
    parser.add_argument("--title", help="Page title, used to name office-suite exports")
    parser.add_argument(
        "--html-file",
        type=Path,
        help="Saved page markup to scan for embedded documents instead of fetching the page",
    )


def page_from_args(args: argparse.Namespace) -> PageContext:
    html = None
    if args.html_file is not None:
        html = args.html_file.read_text(encoding="utf-8", errors="replace")
    return PageContext(page_id=args.page_id, url=args.url, title=args.title, html=html)
