"""CLI for the blob ledger.

Commands:
    init-db                          - Create the ledger table
    reset-db                         - Drop and recreate the ledger table
    usage <workspace>                - Total bytes used by a workspace
    ls <workspace>                   - List blob metadata of a workspace
    show <workspace> <file_id>       - Show one record
    put <workspace> <file_id>        - Insert or overwrite one record
    rm <workspace> <file_id>         - Delete one record
    import <workspace> <manifest>    - Bulk insert records from a JSON manifest
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated
from uuid import UUID

import typer
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from sqlalchemy.ext.asyncio import AsyncEngine

from blob_ledger.config import settings
from blob_ledger.db import init_db, make_engine, reset_db
from blob_ledger.errors import BlobMetadataNotFoundError, StoreFailureError
from blob_ledger.ledger import (
    BulkInsertMeta,
    delete_blob_metadata,
    get_all_workspace_blob_ids,
    get_all_workspace_blob_metadata,
    get_blob_metadata,
    get_workspace_usage_size,
    insert_blob_metadata_bulk,
    upsert_blob_metadata,
)

app = typer.Typer(
    name="blob-ledger",
    help="Blob ledger: per-workspace blob metadata and storage usage",
    no_args_is_help=True,
)
console = Console()

manifest_adapter: TypeAdapter[list[BulkInsertMeta]] = TypeAdapter(list[BulkInsertMeta])

WorkspaceArg = Annotated[str, typer.Argument(help="Workspace ID (UUID)")]
FileIdArg = Annotated[str, typer.Argument(help="File ID within the workspace")]


def run_async(coro):
    """Run an async coroutine in sync context, reporting store failures."""
    try:
        return asyncio.run(coro)
    except StoreFailureError as e:
        console.print(f"[red]Store error:[/red] {e}")
        raise typer.Exit(1) from None


def parse_workspace_id(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        console.print(f"[red]Error:[/red] Invalid UUID: {value}")
        raise typer.Exit(1) from None


def format_size(num_bytes: int) -> str:
    """Human-readable byte count, e.g. 1536 -> '1.5 KiB'."""
    if num_bytes < 1024:
        return f"{num_bytes} B"
    size = float(num_bytes)
    unit = "B"
    for unit in ("KiB", "MiB", "GiB", "TiB"):
        size /= 1024
        if size < 1024:
            break
    return f"{size:.1f} {unit}"


@asynccontextmanager
async def open_engine() -> AsyncIterator[AsyncEngine]:
    engine = make_engine()
    try:
        yield engine
    finally:
        await engine.dispose()


@app.callback()
def main_callback(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log ledger activity at DEBUG level")
    ] = False,
):
    """Configure logging before any command runs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("init-db")
def init_database():
    """Initialize the database schema (creates tables if they don't exist)."""
    async def _init():
        async with open_engine() as engine:
            await init_db(engine)
        console.print("[green]Ledger initialized successfully.[/green]")

    run_async(_init())


@app.command("reset-db")
def reset_database(
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Skip confirmation prompt")
    ] = False,
):
    """Drop the ledger table and recreate it.

    WARNING: This destroys all ledger rows!
    """
    if not force:
        confirm = typer.confirm(
            "This will DELETE ALL LEDGER DATA. Are you sure?",
            default=False,
        )
        if not confirm:
            console.print("[yellow]Aborted.[/yellow]")
            raise typer.Exit(0)

    async def _reset():
        async with open_engine() as engine:
            await reset_db(engine)
        console.print("[green]Ledger reset successfully.[/green]")

    run_async(_reset())


@app.command("usage")
def usage(workspace: WorkspaceArg):
    """Show the total storage used by a workspace."""
    workspace_id = parse_workspace_id(workspace)

    async def _usage():
        async with open_engine() as engine:
            total = await get_workspace_usage_size(engine, workspace_id)
        console.print(f"[bold]{workspace_id}[/bold]: {total} bytes ({format_size(total)})")

    run_async(_usage())


@app.command("ls")
def list_blobs(
    workspace: WorkspaceArg,
    ids_only: Annotated[
        bool, typer.Option("--ids-only", help="Print only file IDs, one per line")
    ] = False,
):
    """List the blob metadata recorded for a workspace."""
    workspace_id = parse_workspace_id(workspace)

    async def _ls():
        async with open_engine() as engine:
            if ids_only:
                for file_id in sorted(await get_all_workspace_blob_ids(engine, workspace_id)):
                    console.print(file_id, highlight=False)
                return
            records = await get_all_workspace_blob_metadata(engine, workspace_id)

        if not records:
            console.print("[yellow]No blobs found.[/yellow]")
            return

        table = Table(title=f"Blobs in {workspace_id}")
        table.add_column("File ID", style="cyan")
        table.add_column("Type")
        table.add_column("Size", justify="right")
        table.add_column("Modified")
        for record in sorted(records, key=lambda r: r.file_id):
            table.add_row(
                record.file_id,
                record.file_type,
                format_size(record.file_size),
                str(record.modified_at or ""),
            )
        console.print(table)
        console.print(f"[dim]{len(records)} blobs[/dim]")

    run_async(_ls())


@app.command("show")
def show_blob(workspace: WorkspaceArg, file_id: FileIdArg):
    """Show details for a single blob record."""
    workspace_id = parse_workspace_id(workspace)

    async def _show():
        async with open_engine() as engine:
            try:
                record = await get_blob_metadata(engine, workspace_id, file_id)
            except BlobMetadataNotFoundError:
                console.print(f"[red]Error:[/red] Blob not found: {file_id}")
                raise typer.Exit(1) from None

        panel_content = [
            f"[bold]Workspace:[/bold] {record.workspace_id}",
            f"[bold]File ID:[/bold] {record.file_id}",
            f"[bold]Type:[/bold] {record.file_type}",
            f"[bold]Size:[/bold] {record.file_size} bytes ({format_size(record.file_size)})",
        ]
        if record.modified_at:
            panel_content.append(f"[bold]Modified:[/bold] {record.modified_at}")
        console.print(Panel("\n".join(panel_content), title="Blob Metadata"))

    run_async(_show())


@app.command("put")
def put_blob(
    workspace: WorkspaceArg,
    file_id: FileIdArg,
    file_type: Annotated[str, typer.Option("--type", "-t", help="Content type, e.g. image/png")],
    file_size: Annotated[int, typer.Option("--size", "-s", min=0, help="Size in bytes")],
):
    """Insert a blob record, or overwrite its type and size."""
    workspace_id = parse_workspace_id(workspace)

    async def _put():
        async with open_engine() as engine:
            await upsert_blob_metadata(engine, workspace_id, file_id, file_type, file_size)
        console.print(f"[green]Recorded[/green] {file_id} ({format_size(file_size)})")

    run_async(_put())


@app.command("rm")
def remove_blob(workspace: WorkspaceArg, file_id: FileIdArg):
    """Delete a blob record. Missing records are ignored."""
    workspace_id = parse_workspace_id(workspace)

    async def _rm():
        async with open_engine() as engine:
            async with engine.begin() as conn:
                await delete_blob_metadata(conn, workspace_id, file_id)
        console.print(f"[green]Removed[/green] {file_id}")

    run_async(_rm())


@app.command("import")
def import_manifest(
    workspace: WorkspaceArg,
    manifest: Annotated[
        Path,
        typer.Argument(
            help="JSON array of {object_id, file_id, file_type, file_size}",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ],
):
    """Bulk insert records from a manifest. Existing keys are left untouched."""
    workspace_id = parse_workspace_id(workspace)
    try:
        entries = manifest_adapter.validate_json(manifest.read_bytes())
    except ValidationError as e:
        console.print(f"[red]Error:[/red] Invalid manifest {manifest}:\n{e}")
        raise typer.Exit(1) from None

    async def _import():
        async with open_engine() as engine:
            inserted = await insert_blob_metadata_bulk(engine, workspace_id, entries)
        skipped = len(entries) - inserted
        console.print(f"[green]Inserted:[/green] {inserted}  [yellow]Skipped:[/yellow] {skipped}")

    run_async(_import())


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
