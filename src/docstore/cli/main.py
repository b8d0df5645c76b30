"""Main CLI entry point for docstore."""

import logging
from pathlib import Path
from typing import Dict, Optional

import typer
from rich.console import Console
from rich.panel import Panel

from docstore.client import ClientError, DocumentClient
from docstore.config import ServiceConfig
from docstore.constants import (
    DATA_DIR,
    DEFAULT_HOST,
    DEFAULT_PORT,
    EXIT_SYSTEM_ERROR,
    EXIT_USER_ERROR,
)
from docstore.log import setup_logging
from docstore.storage import DocumentStoreError

logger = logging.getLogger("docstore.cli")

console = Console()
err_console = Console(stderr=True)
app = typer.Typer(
    name="docstore",
    help="Storage service for documents and their metadata",
    add_completion=False,
)

HOST_OPTION = typer.Option(DEFAULT_HOST, "--host", envvar="DOCSTORE_HOST", help="Service host")
PORT_OPTION = typer.Option(DEFAULT_PORT, "--port", "-p", envvar="DOCSTORE_PORT", help="Service port")
DATA_DIR_OPTION = typer.Option(
    Path(DATA_DIR),
    "--data-dir",
    "-d",
    envvar="DOCSTORE_DATA_DIR",
    help="Directory holding documents and the metadata database",
)


def _client(host: str, port: int) -> DocumentClient:
    return DocumentClient(f"http://{host}:{port}")


def _fail(message: str, detail: str = "", code: int = EXIT_USER_ERROR) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {message}", style="red")
    if detail:
        err_console.print(f"  {detail}", style="dim")
    raise typer.Exit(code)


@app.command()
def version() -> None:
    """Show docstore version."""
    from docstore import __version__
    typer.echo(f"docstore version {__version__}")


@app.command()
def serve(
    port: int = PORT_OPTION,
    data_dir: Path = DATA_DIR_OPTION,
    bind: str = typer.Option("0.0.0.0", "--bind", help="Interface to listen on"),
    debug: bool = typer.Option(False, "--debug", help="Show verbose output"),
    use_gzip: bool = typer.Option(False, "--gzip", help="Use gzip compression"),
) -> None:
    """Start the HTTP document service."""
    import uvicorn

    from docstore.api import create_app

    config = ServiceConfig(data_dir=data_dir, port=port, verbose=debug, use_gzip=use_gzip)
    setup_logging(config.verbose)

    try:
        store = config.open_store()
    except (OSError, DocumentStoreError) as e:
        _fail(f"Unable to open storage in {config.data_dir}", str(e), EXIT_SYSTEM_ERROR)

    try:
        report = store.find_orphans()
        if not report.is_clean:
            logger.warning(
                "Found %d orphaned blob(s) and %d orphaned metadata record(s); run 'docstore check'",
                len(report.blob_orphans),
                len(report.metadata_orphans),
            )

        uvicorn.run(
            create_app(store, use_gzip=config.use_gzip),
            host=bind,
            port=config.port,
            log_config=None,
            timeout_graceful_shutdown=5,
        )
    finally:
        store.metadata.close()


@app.command()
def put(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to upload"),
    content_type: str = typer.Option(..., "--content-type", "-t", help="Content type of the file"),
    key: str = typer.Option("", "--key", "-k", help="Document key (random if omitted)"),
    name: Optional[str] = typer.Option(None, "--name", help="Display name"),
    title: Optional[str] = typer.Option(None, "--title", help="Document title"),
    host: str = HOST_OPTION,
    port: int = PORT_OPTION,
) -> None:
    """Upload a document."""
    params: Dict[str, str] = {}
    if name:
        params["name"] = name
    if title:
        params["dc:title"] = title

    try:
        with _client(host, port) as client:
            res = client.post_file(file, content_type, key=key, params=params)
    except ClientError as e:
        _fail("Upload failed", str(e), EXIT_SYSTEM_ERROR)

    if not res["ok"]:
        _fail(res.get("message", "upload failed"), res.get("error", ""))

    console.print(f"id: {res.get('key', '')}")
    console.print(f"[dim]{res.get('message', '')}[/dim]")


@app.command()
def get(
    key: str = typer.Argument(..., help="Document key"),
    out: Optional[Path] = typer.Option(
        None,
        "--out",
        "-o",
        help="File to save the document into (printed if not specified)",
    ),
    host: str = HOST_OPTION,
    port: int = PORT_OPTION,
) -> None:
    """Download a document."""
    try:
        with _client(host, port) as client:
            res = client.get(key)
    except ClientError as e:
        _fail("Download failed", str(e), EXIT_SYSTEM_ERROR)

    if not res["ok"]:
        _fail(res.get("message", "download failed"), res.get("error", ""))

    console.print(f"id: {res.get('key', key)}")
    document = res.get("document", "")
    if out is None:
        console.print(f"data: {document}", markup=False, highlight=False)
    else:
        out.write_text(document, encoding="utf-8")
        console.print(f"output: {out}")


@app.command()
def delete(
    key: str = typer.Argument(..., help="Document key"),
    host: str = HOST_OPTION,
    port: int = PORT_OPTION,
) -> None:
    """Remove a document."""
    try:
        with _client(host, port) as client:
            res = client.delete(key)
    except ClientError as e:
        _fail("Delete failed", str(e), EXIT_SYSTEM_ERROR)

    if not res["ok"]:
        _fail(res.get("message", "delete failed"), res.get("error", ""))

    console.print(f"[green]✓[/green] {res.get('message', 'removed document')}: {key}")


@app.command()
def check(
    data_dir: Path = DATA_DIR_OPTION,
    prune: bool = typer.Option(
        False,
        "--prune",
        help="Delete the surviving half of every orphaned document",
    ),
) -> None:
    """Report documents whose blob or metadata is missing.

    Exits with status 1 if orphans remain.
    """
    config = ServiceConfig(data_dir=data_dir)
    if not config.documents_dir.is_dir() or not config.db_path.exists():
        _fail(f"No document storage found in {config.data_dir}")

    try:
        store = config.open_store()
    except (OSError, DocumentStoreError) as e:
        _fail(f"Unable to open storage in {config.data_dir}", str(e), EXIT_SYSTEM_ERROR)

    try:
        report = store.find_orphans()
        if report.is_clean:
            console.print("[bold green]✓[/bold green] No orphaned documents")
            return

        lines = []
        for key in report.blob_orphans:
            lines.append(f"  [yellow]blob only[/yellow]      {key}")
        for key in report.metadata_orphans:
            lines.append(f"  [yellow]metadata only[/yellow]  {key}")
        console.print(Panel("\n".join(lines), title="Orphaned documents", border_style="yellow"))

        if not prune:
            console.print("\nUse [bold]--prune[/bold] to delete them")
            raise typer.Exit(1)

        pruned = store.prune_orphans(report)
        console.print(f"\n[bold green]>[/bold green] Pruned {len(pruned)} orphan(s)")
    except DocumentStoreError as e:
        _fail("Check failed", str(e), EXIT_SYSTEM_ERROR)
    finally:
        store.metadata.close()


if __name__ == "__main__":
    app()
