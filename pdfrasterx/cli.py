"""
Command-line interface for pdfrasterx.
"""

import logging
import os
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from pdfrasterx import __version__
from pdfrasterx.config import MAX_DPI, MIN_DPI, ConverterSettings
from pdfrasterx.converter import ConversionOrchestrator, ConversionState
from pdfrasterx.exceptions import PDFRasterXError
from pdfrasterx.repair import RepairExecutor
from pdfrasterx.utils import format_file_size
from pdfrasterx.validators import validate_pdf

console = Console()

_STATE_LABELS = {
    ConversionState.VALIDATING: "Validating",
    ConversionState.INITIAL_PASS: "Rendering pages",
    ConversionState.RATE_GATE: "Checking failures",
    ConversionState.REPAIR: "Repairing document",
    ConversionState.RETRY: "Retrying failed pages",
    ConversionState.DEGRADED_RETRY: "Retrying at fallback DPI",
    ConversionState.DONE: "Done",
}


def configure_logging(verbose: bool) -> None:
    """Route ``pdfrasterx`` log records through rich."""

    logger = logging.getLogger("pdfrasterx")
    logger.handlers.clear()
    handler = RichHandler(console=console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    pdfrasterx - Convert PDF pages to images, repairing damaged files on the way.
    """
    pass


@cli.command(name="convert")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--output-dir', '-o',
    default='./output',
    help='Output directory for page images',
    type=click.Path(file_okay=False)
)
@click.option(
    '--dpi',
    default=150,
    help=f'Rendering resolution ({MIN_DPI}-{MAX_DPI})',
    type=click.IntRange(MIN_DPI, MAX_DPI)
)
@click.option(
    '--format', 'image_format',
    default='png',
    help='Image format',
    type=click.Choice(['png', 'jpg', 'jpeg'], case_sensitive=False)
)
@click.option(
    '--threshold',
    default=None,
    help='Failure rate below which repair is skipped (0.0-1.0)',
    type=click.FloatRange(0.0, 1.0)
)
@click.option(
    '--no-repair',
    is_flag=True,
    default=False,
    help='Never run external repair tools'
)
@click.option(
    '--jpeg-quality',
    default=None,
    help='JPEG quality (1-95)',
    type=click.IntRange(1, 95)
)
@click.option('--verbose', '-v', is_flag=True, default=False, help='Show debug logging')
def convert(input_pdf, output_dir, dpi, image_format, threshold, no_repair, jpeg_quality, verbose):
    """
    Convert every page of a PDF into an image.

    Examples:

        pdfrasterx convert input.pdf

        pdfrasterx convert input.pdf -o pages --dpi 300 --format jpg

        pdfrasterx convert damaged.pdf --threshold 0 -v
    """
    configure_logging(verbose)
    try:
        settings = ConverterSettings.from_env().with_overrides(
            repair_skip_threshold=threshold,
            jpeg_quality=jpeg_quality,
            repair_enabled=False if no_repair else None,
        )
        orchestrator = ConversionOrchestrator(settings)

        console.print(f"\n[bold cyan]Converting {os.path.basename(input_pdf)} at {dpi} DPI...[/bold cyan]")

        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console
        ) as progress:
            task = progress.add_task("Validating", total=None)

            def update_state(state, report):
                progress.update(task, description=_STATE_LABELS[state])

            def update_progress(current, total):
                progress.update(task, completed=current, total=total)

            report = orchestrator.convert(
                input_pdf,
                output_dir,
                dpi,
                image_format,
                progress_callback=update_progress,
                on_state=update_state,
            )

        summary = Table(title="Conversion Summary", show_header=False)
        summary.add_column("Property", style="cyan")
        summary.add_column("Value", style="green")
        summary.add_row("File", report.source_name)
        summary.add_row("Pages", str(report.total_pages))
        summary.add_row("Converted", str(report.successful_pages))
        summary.add_row("Failed", f"[red]{report.failed_pages}[/red]" if report.failed_pages else "0")
        summary.add_row("Format", report.image_format.value)
        summary.add_row("DPI", str(report.dpi_used))
        summary.add_row("Repair", report.repair_method or "none")
        summary.add_row("Output size", format_file_size(sum(r.size_bytes for r in report.file_records.values())))
        summary.add_row("Time", f"{report.elapsed_millis / 1000.0:.2f}s")
        console.print(summary)

        if report.failed_pages:
            console.print("\n[bold red]Failed pages:[/bold red]")
            for message in report.errors[:10]:
                console.print(f"  ✗ {message}")
            if report.failed_pages > 10:
                console.print(f"  ... and {report.failed_pages - 10} more")
        else:
            console.print(f"\n[bold green]✓ Converted all {report.total_pages} page(s)[/bold green]")
        console.print(f"[dim]Output directory: {os.path.abspath(output_dir)}[/dim]\n")

    except PDFRasterXError as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)
    except ValueError as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)


@cli.command(name="validate")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
def validate(input_pdf):
    """
    Check whether a PDF can be loaded.

    Example:

        pdfrasterx validate input.pdf
    """
    verdict = validate_pdf(input_pdf)

    table = Table(title=f"PDF Validation: {os.path.basename(input_pdf)}", show_header=False)
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    table.add_row("File Size", format_file_size(os.path.getsize(input_pdf)))
    table.add_row("Loadable", "Yes" if verdict.loadable else "[red]No[/red]")
    table.add_row("Encrypted", "Yes" if verdict.encrypted else "No")
    table.add_row("Structural Damage", "[yellow]Suspected[/yellow]" if verdict.structurally_suspect else "No")
    table.add_row("Pages", str(verdict.page_count))
    if verdict.diagnostic:
        table.add_row("Diagnostic", verdict.diagnostic)

    console.print()
    console.print(table)
    console.print()

    if verdict.is_fatal:
        sys.exit(1)


@cli.command(name="tools")
def tools():
    """
    Show which external repair tools are available.
    """
    settings = ConverterSettings.from_env().with_overrides(repair_enabled=True)
    executor = RepairExecutor(settings)

    table = Table(title="Repair Tools")
    table.add_column("Strategy", style="cyan")
    table.add_column("Tool", style="cyan")
    table.add_column("Status")
    table.add_column("Details", style="dim")
    for strategy, result in executor.availability().items():
        status = "[green]available[/green]" if result.available else f"[red]{result.status.value}[/red]"
        table.add_row(strategy.value, result.executable or strategy.tool, status, result.version or result.detail)

    console.print()
    console.print(table)
    console.print()


if __name__ == '__main__':
    cli()
