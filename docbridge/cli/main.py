"""Main CLI entry point for docbridge."""

import json
import click
from typing import Any, Optional
from rich.console import Console
from rich.table import Table

from docbridge import __version__
from docbridge.config.settings import get_settings
from docbridge.store.base import DataServer
from docbridge.store.exceptions import StoreError
from docbridge.store.factory import get_server
from docbridge.store.options import Flags, Format, Options
from docbridge.utils.logging import setup_logging, get_logger


# Create Rich console for output
console = Console()
logger = get_logger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="docbridge")
@click.option("--uri", default=None, help="Store connection string (overrides configuration)")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Set the logging level"
)
@click.pass_context
def cli(ctx: click.Context, uri: Optional[str] = None, log_level: Optional[str] = None) -> None:
    """
    docbridge - inspect MongoDB and ArangoDB stores through one API.

    Lists databases and collections, counts documents and fetches
    documents by key.
    """
    ctx.ensure_object(dict)

    config_overrides = {}
    if uri:
        config_overrides["server"] = {"uri": uri}
    if log_level:
        config_overrides["app"] = {"log_level": log_level}

    try:
        settings = get_settings(config_overrides)
        ctx.obj["settings"] = settings
        setup_logging(settings.app.log_level, Console(stderr=True))
        logger.debug(f"Loaded configuration: store URI={settings.server.uri}")
    except Exception as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        ctx.exit(1)


def _server(ctx: click.Context) -> DataServer:
    """Open the configured server once per invocation."""
    if "server" not in ctx.obj:
        ctx.obj["server"] = get_server(ctx.obj["settings"])
        ctx.call_on_close(ctx.obj["server"].disconnect)
    return ctx.obj["server"]


def _fail(ctx: click.Context, error: Exception) -> None:
    logger.debug(f"Command failed: {error}")
    console.print(f"[red]Error: {error}[/red]")
    ctx.exit(1)


@cli.command()
@click.pass_context
def version(ctx: click.Context) -> None:
    """Display version information."""
    console.print(f"[bold green]docbridge[/bold green] version [bold]{__version__}[/bold]")


@cli.command()
@click.pass_context
def databases(ctx: click.Context) -> None:
    """List the databases of the store."""
    try:
        names = _server(ctx).list_databases()
    except StoreError as e:
        _fail(ctx, e)
        return

    table = Table(title="Databases")
    table.add_column("Name", style="cyan")
    for name in names:
        table.add_row(name)
    console.print(table)


@cli.command()
@click.argument("database")
@click.pass_context
def collections(ctx: click.Context, database: str) -> None:
    """List the collections of DATABASE."""
    try:
        db = _server(ctx).get_database(database, Flags.CONNECT | Flags.ASSERT)
        names = db.list_collections()
    except StoreError as e:
        _fail(ctx, e)
        return

    table = Table(title=f"Collections in {database}")
    table.add_column("Name", style="cyan")
    for name in names:
        table.add_row(name)
    console.print(table)


@cli.command()
@click.argument("database")
@click.argument("collection")
@click.pass_context
def count(ctx: click.Context, database: str, collection: str) -> None:
    """Count the documents of COLLECTION in DATABASE."""
    try:
        db = _server(ctx).get_database(database, Flags.CONNECT | Flags.ASSERT)
        total = db.get_collection(collection, Flags.CONNECT | Flags.ASSERT).record_count()
    except StoreError as e:
        _fail(ctx, e)
        return

    console.print(f"[bold]{database}/{collection}[/bold]: {total} document(s)")


@cli.command()
@click.argument("database")
@click.argument("collection")
@click.argument("key")
@click.option(
    "--format",
    "output_format",
    type=click.Choice([item.value for item in Format], case_sensitive=False),
    default=Format.STANDARD.value,
    help="Result format"
)
@click.pass_context
def find(ctx: click.Context, database: str, collection: str, key: str, output_format: str) -> None:
    """Fetch the document with KEY from COLLECTION in DATABASE."""
    try:
        db = _server(ctx).get_database(database, Flags.CONNECT | Flags.ASSERT)
        col = db.get_collection(collection, Flags.CONNECT | Flags.ASSERT)
        result = col.find_by_key(key, Options(format=output_format.lower()))
    except StoreError as e:
        _fail(ctx, e)
        return

    if result is None:
        console.print(f"[yellow]No document with key '{key}' in {database}/{collection}[/yellow]")
        ctx.exit(1)
        return

    if output_format.lower() in (Format.HANDLE.value, Format.KEY.value):
        console.print(str(result))
    else:
        _print_document(result, f"{database}/{collection}/{key}")


def _print_document(document: Any, title: str) -> None:
    data = document.to_dict() if hasattr(document, "to_dict") else dict(document)
    table = Table(title=title)
    table.add_column("Property", style="cyan")
    table.add_column("Value")
    for name, value in data.items():
        table.add_row(str(name), json.dumps(value, default=str))
    console.print(table)


def main() -> None:
    """Entry point for the CLI application."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        console.print(f"[red]Error: {e}[/red]")
        exit(1)


if __name__ == "__main__":
    main()
