from __future__ import annotations

import argparse

from rich.table import Table

from scriptorium.cli.context import CLIContext
from scriptorium.infrastructure.db.repos.preference_repo import PreferenceRepo


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("config", help="Show or change stored preferences")
    config_subparsers = parser.add_subparsers(dest="config_command", required=True)

    show = config_subparsers.add_parser("show", help="Show effective configuration")
    show.set_defaults(handler=run_show)

    set_key = config_subparsers.add_parser("set-key", help="Store the OCR API key")
    set_key.add_argument("api_key")
    set_key.set_defaults(handler=run_set_key)

    images = config_subparsers.add_parser("images", help="Include extracted images in transcriptions")
    images.add_argument("state", choices=("on", "off"))
    images.set_defaults(handler=run_images)


def _mask(secret: str | None) -> str:
    if not secret:
        return "[red]not set[/red]"
    if len(secret) <= 8:
        return "****"
    return f"{secret[:4]}...{secret[-4:]}"


def run_show(args: argparse.Namespace, ctx: CLIContext) -> int:
    ctx.require_project()
    repo = PreferenceRepo(ctx.paths.db_path)
    settings = ctx.settings

    key_source = "environment" if settings.api_key else "stored"
    table = Table(title="Configuration")
    table.add_column("Setting")
    table.add_column("Value", overflow="fold")
    table.add_row("Home", str(ctx.paths.home_dir))
    table.add_row("Database", str(ctx.paths.db_path))
    table.add_row(f"API key ({key_source})", _mask(settings.api_key or repo.api_key()))
    table.add_row("API base", settings.api_base)
    table.add_row("OCR model", settings.ocr_model)
    table.add_row("Include images", "on" if repo.include_images() else "off")
    table.add_row("HTTP timeout (s)", f"{settings.http_timeout_seconds:g}")
    table.add_row("Export timeout (s)", f"{settings.export_timeout_seconds:g}")
    table.add_row("JPEG quality", str(settings.jpeg_quality))
    table.add_row("Fetch cookie", "set" if settings.fetch_cookie else "not set")
    ctx.console.print(table)
    return 0


def run_set_key(args: argparse.Namespace, ctx: CLIContext) -> int:
    ctx.require_project()
    PreferenceRepo(ctx.paths.db_path).set_api_key(args.api_key)
    ctx.console.print("[green]API key stored[/green]")
    if ctx.settings.api_key:
        ctx.console.print("[yellow]SCRIPTORIUM_API_KEY is set and takes precedence[/yellow]")
    return 0


def run_images(args: argparse.Namespace, ctx: CLIContext) -> int:
    ctx.require_project()
    enabled = args.state == "on"
    PreferenceRepo(ctx.paths.db_path).set_include_images(enabled)
    ctx.console.print(f"Image extraction [green]{args.state}[/green]")
    return 0
