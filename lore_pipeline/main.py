#!/usr/bin/env python3
"""
WorldLore Geo - Import Pipeline Entry Point

Loads historical boundary snapshots and Natural Earth physical features into
the database served by the layer API.

Usage:
    python -m lore_pipeline.main init-db
    python -m lore_pipeline.main import-history --year 1900
    python -m lore_pipeline.main import-natural --type rivers --lod low
    python -m lore_pipeline.main status
    python -m lore_pipeline.main resolve "Angola" 1900
"""

from pathlib import Path

import click
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from lore_pipeline.config import settings
from lore_pipeline.database import SessionLocal, create_all_tables, drop_all_tables
from lore_pipeline.exceptions import LoreError
from lore_pipeline.ingesters import NATURAL_FOLDERS, HistoricalImporter, ImportReport, NaturalImporter
from lore_pipeline.ingesters.natural import LOD_FOLDERS
from lore_pipeline.normalizers import build_canonicalizer, build_override_engine, color_from_key
from lore_pipeline.repository import count_rows, select_history_years
from lore_pipeline.utils.text import display_name_for, normalize_label


console = Console()


def invalidate_layer_cache(layer: str) -> None:
    """Drop cached API layer bodies after an import."""
    from lore_api.cache import get_redis_client, invalidate_layers

    # The in-memory fallback belongs to the API process and cannot be reached from here
    if get_redis_client() is None:
        logger.warning(
            f"Redis unavailable: cached {layer} layers stay in the API until they expire "
            f"(API_LAYER_CACHE_TTL={settings.api.layer_cache_ttl}s)"
        )
        return

    deleted = invalidate_layers(layer)
    logger.info(f"Invalidated {deleted} cached {layer} responses")


def print_reports(title: str, reports: list[ImportReport]) -> None:
    """Print an import summary table."""
    console.print(f"\n[bold]{title}[/bold]")
    table = Table()
    table.add_column("File")
    table.add_column("Imported")
    table.add_column("Created")
    table.add_column("Refreshed")
    table.add_column("Geometries")
    table.add_column("Skipped")
    table.add_column("Duration")

    for report in reports:
        duration = f"{report.duration_seconds:.1f}s" if report.duration_seconds else "-"
        skipped = f"[yellow]{report.skipped}[/yellow]" if report.skipped else "0"
        table.add_row(
            report.label,
            str(report.imported),
            str(report.created),
            str(report.refreshed),
            str(report.geometries),
            skipped,
            duration,
        )

    console.print(table)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug):
    """WorldLore Geo Import Pipeline"""
    if debug:
        from lore_pipeline.utils.logging import setup_logging
        setup_logging(level="DEBUG")


@cli.command("init-db")
@click.option("--drop", is_flag=True, help="Drop existing tables first (destroys data)")
def init_db(drop: bool):
    """Create database tables. Safe to re-run."""
    if drop:
        click.confirm("Drop all WorldLore geo tables?", abort=True)
        drop_all_tables()
        console.print("[yellow]Dropped existing tables[/yellow]")

    create_all_tables()
    console.print("[green]✓ Tables ready[/green]")


@cli.command("import-history")
@click.argument("directory", required=False, type=click.Path(path_type=Path, file_okay=False))
@click.option("--year", "years", type=int, multiple=True, help="Only import these years (repeatable)")
@click.option("--batch-size", type=int, default=None, help="Flush every N features")
def import_history(directory: Path | None, years: tuple[int, ...], batch_size: int | None):
    """
    Import historical-basemaps snapshots.

    DIRECTORY holds world_<year>.geojson files (defaults to HISTORICAL_DIR).
    """
    directory = directory or settings.pipeline.historical_dir
    console.print("\n[bold blue]WorldLore Geo - Historical Import[/bold blue]")
    console.print(f"Directory: {directory}")
    if years:
        console.print(f"Years: {', '.join(str(y) for y in years)}")

    create_all_tables()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Importing historical boundaries...", total=None)
        try:
            with HistoricalImporter(batch_size=batch_size or settings.pipeline.batch_size) as importer:
                reports = importer.import_directory(directory, years=years or None)
            progress.update(task, description="[green]✓ Historical import complete[/green]")
        except LoreError as e:
            progress.update(task, description="[red]✗ Historical import failed[/red]")
            console.print(f"[red]{escape(str(e))}[/red]")
            raise SystemExit(1)

    print_reports("Historical Import Summary", reports)
    if reports:
        invalidate_layer_cache("history")


@cli.command("import-natural")
@click.argument("directory", required=False, type=click.Path(path_type=Path, file_okay=False))
@click.option("--type", "folders", type=click.Choice(list(NATURAL_FOLDERS)), multiple=True, help="Feature folder (repeatable)")
@click.option("--lod", "lods", type=click.Choice(list(LOD_FOLDERS)), multiple=True, help="Level of detail (repeatable)")
@click.option("--batch-size", type=int, default=None, help="Flush every N features")
def import_natural(directory: Path | None, folders: tuple[str, ...], lods: tuple[str, ...], batch_size: int | None):
    """
    Import Natural Earth rivers, mountain ranges and peaks.

    DIRECTORY holds {rivers,mountain_ranges,peaks}/{low,med,high}/world.geojson
    (defaults to NATURAL_DIR).
    """
    directory = directory or settings.pipeline.natural_dir
    console.print("\n[bold blue]WorldLore Geo - Natural Features Import[/bold blue]")
    console.print(f"Directory: {directory}")

    create_all_tables()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Importing natural features...", total=None)
        try:
            with NaturalImporter(batch_size=batch_size or settings.pipeline.batch_size) as importer:
                reports = importer.import_directory(directory, folders=folders or None, lods=lods or None)
            progress.update(task, description="[green]✓ Natural import complete[/green]")
        except LoreError as e:
            progress.update(task, description="[red]✗ Natural import failed[/red]")
            console.print(f"[red]{escape(str(e))}[/red]")
            raise SystemExit(1)

    print_reports("Natural Import Summary", reports)
    if reports:
        invalidate_layer_cache("natural")


@cli.command()
def status():
    """Show database statistics."""
    console.print("\n[bold blue]WorldLore Geo - Status[/bold blue]\n")

    session = SessionLocal()

    try:
        table = Table()
        table.add_column("Table")
        table.add_column("Rows")
        for label, count in count_rows(session).items():
            table.add_row(label, str(count))
        console.print(table)

        years = select_history_years(session)
        if not years:
            console.print("[yellow]No historical years imported. Run 'import-history' first.[/yellow]")
        else:
            console.print(f"\n[bold]Historical Years[/bold] ({len(years)})")
            years_table = Table()
            years_table.add_column("Year")
            years_table.add_column("Areas")
            for year, count in years:
                years_table.add_row(str(year), str(count))
            console.print(years_table)

    finally:
        session.close()


@cli.command()
@click.argument("name")
@click.argument("year", type=int)
@click.option("--subject", default="", help="SUBJECTO value of the feature, if any")
def resolve(name: str, year: int, subject: str):
    """Show how a feature NAME observed in YEAR resolves to a polity."""
    canonicalizer = build_canonicalizer()
    overrides = build_override_engine(canonicalizer)

    derived = canonicalizer.derive_subject(name)
    working = subject if subject.strip() else (derived or name)
    resolved = canonicalizer.canonicalize(working)
    rule = overrides.match(name, year)
    final = overrides.resolve_subject(name, year, resolved)

    table = Table(show_header=False)
    table.add_column("Step")
    table.add_column("Value")
    table.add_row("Normalized name", normalize_label(name))
    table.add_row("Derived subject", derived or "-")
    table.add_row("Canonicalized", resolved)
    table.add_row(
        "Override rule",
        escape(f"/{rule.pattern.pattern}/ {rule.year_from}-{rule.year_to} -> {rule.subject}") if rule else "-",
    )
    table.add_row("Canonical key", f"[bold]{final}[/bold]")
    table.add_row("Display name", display_name_for(final))
    table.add_row("Color", color_from_key(final))

    console.print(table)


if __name__ == "__main__":
    cli()
