from __future__ import annotations

import argparse

from rich.panel import Panel

from scriptorium.cli.commands._page import add_page_arguments, page_from_args
from scriptorium.cli.context import CLIContext


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("ocr", help="Transcribe the document or image behind a URL")
    add_page_arguments(parser)
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    ctx.require_project()
    page = page_from_args(args)

    async def _run(service):
        return await service.run_ocr(page)

    with ctx.console.status(f"Transcribing {page.url}"):
        response = ctx.run_with_service(_run)

    if response.status == "not_found":
        ctx.console.print(f"[yellow]No OCR-able document or image found at[/yellow] {page.url}")
        return 1

    style = "green" if response.status == "created" else "cyan"
    lines = [f"Status: [{style}]{response.status}[/{style}]", f"Digest: {response.digest}"]
    if response.entry is not None:
        lines.extend(
            [
                f"Name: {response.entry.display_name}",
                f"Pages: {response.entry.page_count}  Images: {response.entry.image_count}",
                f"Transcript: {ctx.paths.artifacts_dir / response.entry.transcript_path}",
            ]
        )
    ctx.console.print(Panel("\n".join(lines), title="OCR"))
    return 0
