from __future__ import annotations

import argparse

from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from scriptorium.cli.context import CLIContext
from scriptorium.core.errors import EntryNotFoundError
from scriptorium.infrastructure.db.repos.entry_repo import EntryRepo


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("entries", help="Browse and manage stored transcriptions")
    entries_subparsers = parser.add_subparsers(dest="entries_command", required=True)

    list_entries = entries_subparsers.add_parser("list", help="List transcriptions, most recent first")
    list_entries.add_argument("--limit", type=int, default=50)
    list_entries.set_defaults(handler=run_list)

    show = entries_subparsers.add_parser("show", help="Show one transcription's metadata")
    show.add_argument("digest")
    show.set_defaults(handler=run_show)

    text = entries_subparsers.add_parser("text", help="Print a transcription")
    text.add_argument("digest")
    text.add_argument("--raw", action="store_true", help="Print Markdown source instead of rendering it")
    text.set_defaults(handler=run_text)

    open_entry = entries_subparsers.add_parser("open", help="Locate a transcription on disk")
    open_entry.add_argument("digest")
    open_entry.add_argument("--reveal", action="store_true", help="Open the folder in the file manager")
    open_entry.set_defaults(handler=run_open)

    delete = entries_subparsers.add_parser("delete", help="Remove a transcription from the index")
    delete.add_argument("digest")
    delete.add_argument(
        "--purge-files",
        action="store_true",
        help="Also delete the transcription folder from disk",
    )
    delete.set_defaults(handler=run_delete)


def run_list(args: argparse.Namespace, ctx: CLIContext) -> int:
    ctx.require_project()
    repo = EntryRepo(ctx.paths.db_path)
    entries = repo.list_entries(limit=args.limit)

    table = Table(title=f"Transcriptions ({len(entries)} of {repo.count()})")
    table.add_column("Updated")
    table.add_column("Name", overflow="fold")
    table.add_column("Kind")
    table.add_column("Pages")
    table.add_column("Digest (sha256)", overflow="fold")

    for entry in entries:
        table.add_row(
            entry.updated_at,
            entry.display_name,
            entry.kind,
            str(entry.page_count),
            entry.digest_sha256,
        )

    ctx.console.print(table)
    return 0


def run_show(args: argparse.Namespace, ctx: CLIContext) -> int:
    ctx.require_project()
    repo = EntryRepo(ctx.paths.db_path)
    entry = repo.lookup(args.digest)
    if entry is None:
        raise EntryNotFoundError(f"No transcription with digest {args.digest}")

    table = Table(title=entry.display_name, show_header=False)
    table.add_column("Field")
    table.add_column("Value", overflow="fold")
    table.add_row("Digest", entry.digest_sha256)
    table.add_row("Kind", entry.kind)
    table.add_row("Source", entry.source_url)
    table.add_row("Created", entry.created_at)
    table.add_row("Updated", entry.updated_at)
    table.add_row("Pages", str(entry.page_count))
    table.add_row("Images", str(entry.image_count))
    table.add_row("Folder", str(ctx.paths.artifacts_dir / entry.storage_folder))
    for url in repo.urls_for_digest(entry.digest_sha256):
        table.add_row("Seen at", url)
    ctx.console.print(table)
    return 0


def run_text(args: argparse.Namespace, ctx: CLIContext) -> int:
    ctx.require_project()

    async def _text(service):
        return service.transcript_text(args.digest)

    text = ctx.run_with_service(_text)
    if args.raw:
        ctx.console.print(text, markup=False, highlight=False)
    else:
        ctx.console.print(Markdown(text))
    return 0


def run_open(args: argparse.Namespace, ctx: CLIContext) -> int:
    ctx.require_project()

    async def _open(service):
        return service.open_artifact(args.digest, reveal=args.reveal)

    response = ctx.run_with_service(_open)
    ctx.console.print(
        Panel(
            f"Folder: {response.folder}\nTranscript: {response.transcript_path}",
            title="Transcription files",
        )
    )
    if args.reveal and not response.revealed:
        ctx.console.print("[yellow]Could not open the file manager[/yellow]")
    return 0


def run_delete(args: argparse.Namespace, ctx: CLIContext) -> int:
    ctx.require_project()

    async def _delete(service):
        return service.delete_entry(args.digest, purge_files=args.purge_files)

    deleted = ctx.run_with_service(_delete)
    if not deleted:
        ctx.console.print(f"[yellow]No transcription with digest[/yellow] {args.digest}")
        return 1
    ctx.console.print(f"[green]Deleted[/green] {args.digest}")
    return 0
