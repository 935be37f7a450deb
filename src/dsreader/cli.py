"""Command-line interface for browsing a DSpace repository."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import humanize
import structlog
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from dsreader import summary
from dsreader.client import RepositoryClient
from dsreader.errors import RepositoryError
from dsreader.log import configure_logging
from dsreader.models import ArticleRecord, Bitstream
from dsreader.settings import Settings, get_settings

console = Console()
app = typer.Typer(help="dsreader – DSpace REST repository reader")
logger = structlog.get_logger(__name__)
GROUPINGS = {"year", "edition"}


@app.callback()
def main() -> None:
    configure_logging(get_settings().log_level)


def _open_client(settings: Settings) -> RepositoryClient:
    return RepositoryClient(settings)


@contextmanager
def _repository() -> Iterator[RepositoryClient]:
    settings = get_settings()
    try:
        with _open_client(settings) as client:
            yield client
    except RepositoryError as exc:
        logger.debug("cli.repository_error", error=str(exc))
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


@app.command()
def config(
    json_output: bool = typer.Option(False, "--json", help="Output settings as JSON"),
) -> None:
    """Display the resolved settings."""
    settings = get_settings()
    if json_output:
        typer.echo(settings.model_dump_json(indent=2))
        return
    table = Table(title="dsreader Settings")
    table.add_column("Key")
    table.add_column("Value", overflow="fold")
    for key, value in settings.model_dump().items():
        table.add_row(key, str(value))
    console.print(table)


@app.command()
def communities() -> None:
    """List every community."""
    with _repository() as client:
        records = client.list_communities()
    if not records:
        console.print("[yellow]No communities found.")
        return
    table = Table(title=f"Communities ({len(records)})")
    table.add_column("Name")
    table.add_column("UUID")
    table.add_column("Items", justify="right")
    for record in records:
        count = str(record.count_items) if record.count_items is not None else "—"
        table.add_row(escape(record.name), escape(record.uuid or "—"), count)
    console.print(table)


@app.command()
def collections() -> None:
    """List every collection."""
    with _repository() as client:
        records = client.list_collections()
    if not records:
        console.print("[yellow]No collections found.")
        return
    table = Table(title=f"Collections ({len(records)})")
    table.add_column("Name")
    table.add_column("UUID")
    table.add_column("Items", justify="right")
    for record in records:
        count = str(record.number_items) if record.number_items is not None else "—"
        table.add_row(escape(record.name), escape(record.uuid), count)
    console.print(table)


@app.command()
def collection(collection_id: str = typer.Argument(..., help="Collection UUID")) -> None:
    """Show a single collection."""
    with _repository() as client:
        record = client.get_collection(collection_id)
    table = Table(title="Collection")
    table.add_column("Field")
    table.add_column("Value", overflow="fold")
    table.add_row("Name", escape(record.name))
    table.add_row("UUID", escape(record.uuid))
    table.add_row("Handle", escape(record.handle or "—"))
    table.add_row("Items", str(record.number_items) if record.number_items is not None else "—")
    console.print(table)


@app.command()
def items(collection_id: str = typer.Argument(..., help="Collection UUID")) -> None:
    """List the items of a collection."""
    with _repository() as client:
        records = client.list_items(collection_id)
    if not records:
        console.print("[yellow]Collection has no items.")
        return
    table = Table(title=f"Items ({len(records)})")
    table.add_column("UUID")
    table.add_column("Name", overflow="fold")
    table.add_column("Modified")
    for record in records:
        table.add_row(escape(record.uuid), escape(record.name or "—"), escape(record.last_modified or "—"))
    console.print(table)


@app.command()
def item(
    item_id: str = typer.Argument(..., help="Item UUID"),
    metadata: bool = typer.Option(False, "--metadata", help="Include expanded metadata"),
) -> None:
    """Show a single item with its embedded bitstreams."""
    expand = ("metadata", "bitstreams", "parentCollection") if metadata else ("bitstreams", "parentCollection")
    with _repository() as client:
        record = client.get_item(item_id, expand=expand)
    table = Table(title=escape(record.name or record.uuid))
    table.add_column("Field")
    table.add_column("Value", overflow="fold")
    table.add_row("UUID", escape(record.uuid))
    table.add_row("Collection", escape(record.collection_uuid or "—"))
    table.add_row("Handle", escape(record.handle or "—"))
    for entry in record.metadata or []:
        table.add_row(escape(entry.key), escape(entry.value or "—"))
    console.print(table)
    if record.bitstreams:
        _print_bitstreams(record.bitstreams, title="Embedded bitstreams")


@app.command()
def bitstreams(item_ids: list[str] = typer.Argument(..., help="One or more item UUIDs")) -> None:
    """List bitstreams, fetching each item separately."""
    with _repository() as client:
        listings = client.list_bitstreams_for_items(item_ids)
    records = [bitstream for entries in listings.values() for bitstream in entries]
    if not records:
        console.print("[yellow]No bitstreams found.")
        return
    _print_bitstreams(records, title=f"Bitstreams ({len(records)})")
    total = summary.total_size_bytes(records)
    console.print(f"Total size: {total} bytes ({humanize.naturalsize(total)})")


def _print_bitstreams(records: list[Bitstream], *, title: str) -> None:
    table = Table(title=title)
    table.add_column("Name", overflow="fold")
    table.add_column("Format")
    table.add_column("Size", justify="right")
    table.add_column("UUID")
    for record in records:
        table.add_row(escape(record.name), escape(record.format), str(record.size_bytes), escape(record.uuid))
    console.print(table)


@app.command()
def download(
    bitstream_id: str = typer.Argument(..., help="Bitstream UUID"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Target file (defaults to the bitstream name)"),
) -> None:
    """Download a bitstream's content to disk."""
    with _repository() as client:
        bitstream = client.get_bitstream(bitstream_id)
        target = client.download_bitstream(bitstream, output or _default_download_path(bitstream))
    console.print(f"[green]Saved[/green] {escape(bitstream.name)} to {escape(str(target))}")


def _default_download_path(bitstream: Bitstream) -> Path:
    # server-supplied names may carry directories; keep only the final component
    name = Path(bitstream.name).name
    if name in {"", ".", ".."}:
        name = Path(bitstream.uuid).name or "bitstream"
    return Path(name)


@app.command()
def articles(
    bitstream_id: str = typer.Argument(..., help="Bitstream UUID of a CSV article export"),
    skip_malformed: bool = typer.Option(False, help="Skip malformed rows instead of failing"),
    by: Optional[str] = typer.Option(None, "--by", help="Group counts by 'year' or 'edition'"),
    from_year: Optional[int] = typer.Option(None, help="Earliest year to keep"),
    to_year: Optional[int] = typer.Option(None, help="Latest year to keep"),
    limit: int = typer.Option(10, help="Number of rows to preview"),
) -> None:
    """Decode an article CSV bitstream and summarize it."""
    grouping = by.lower() if by else None
    if grouping is not None and grouping not in GROUPINGS:
        raise typer.BadParameter("--by must be 'year' or 'edition'.")

    with _repository() as client:
        bitstream = client.get_bitstream(bitstream_id)
        records = client.fetch_articles(bitstream, on_error="skip" if skip_malformed else "raise")
    if from_year is not None or to_year is not None:
        records = summary.filter_articles_by_year(records, from_year, to_year)
    if not records:
        console.print("[yellow]No articles matched.")
        return

    console.print(f"[green]{len(records)} articles[/green] in {escape(bitstream.name)}")
    if grouping == "year":
        _print_counts("Articles per year", summary.count_articles_by_year(records).items())
    elif grouping == "edition":
        _print_counts("Articles per edition", summary.count_articles_by_edition(records).most_common())
    else:
        _print_articles(records[:limit])


def _print_counts(title: str, rows: Iterable[tuple[object, int]]) -> None:
    table = Table(title=title)
    table.add_column("Key")
    table.add_column("Articles", justify="right")
    for key, count in rows:
        table.add_row(escape(str(key)), str(count))
    console.print(table)


def _print_articles(records: list[ArticleRecord]) -> None:
    table = Table(title="Articles")
    table.add_column("Year")
    table.add_column("Page")
    table.add_column("Edition")
    table.add_column("Text", overflow="fold")
    for record in records:
        text = record.fulltext_org or ""
        preview = (text[:80] + "…") if len(text) > 80 else text
        table.add_row(
            str(record.sort_year_asc or "—"),
            str(record.newspaper_page or "—"),
            escape(record.edition_id or "—"),
            escape(preview),
        )
    console.print(table)
