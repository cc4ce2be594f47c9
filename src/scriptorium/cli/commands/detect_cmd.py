from __future__ import annotations

import argparse

from rich.table import Table

from scriptorium.cli.commands._page import add_page_arguments, page_from_args
from scriptorium.cli.context import CLIContext


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser(
        "detect",
        help="Show which resource a URL resolves to and whether it was already transcribed",
    )
    add_page_arguments(parser)
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    ctx.require_project()
    page = page_from_args(args)

    async def _detect(service):
        response = await service.init(page)
        prompt = await service.navigation_complete(page)
        return response, prompt

    response, prompt = ctx.run_with_service(_detect)

    if response.resource is None:
        ctx.console.print(f"[yellow]No OCR-able document or image found at[/yellow] {page.url}")
        return 1

    table = Table(title="Detection")
    table.add_column("Field")
    table.add_column("Value", overflow="fold")
    table.add_row("Resource", response.resource.url)
    table.add_row("Kind", response.resource.kind)
    table.add_row("Strategy", response.resource.strategy)
    table.add_row("Name", response.resource.name)
    if prompt is not None:
        table.add_row("Already transcribed", f"[green]yes[/green] ({prompt.digest_sha256})")
    elif response.existing.found:
        table.add_row("Already transcribed", f"[green]yes[/green] ({response.existing.digest})")
    else:
        table.add_row("Already transcribed", "no")
    ctx.console.print(table)
    return 0
