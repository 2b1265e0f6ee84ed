"""
CLI Interface
=============
Command-line interface for the ACT parser engine.

Usage:
    python -m act_parser parse <pdf_path> [options]
    python -m act_parser batch <directory> [options]
    python -m act_parser detect <filename>
    python -m act_parser validate <json_path>
    python -m act_parser info <pdf_path>
    python -m act_parser serve [options]
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from . import __version__
from .bundle import build_bundle
from .config import ParserConfig
from .detector import detect_format
from .engine import ParserEngine
from .exceptions import ParserError
from .models import FormatVariant

console = Console()

FORMAT_CHOICES = ["auto"] + [v.value for v in FormatVariant]


def _format_override(value: str):
    return None if value == "auto" else value


@click.group()
@click.version_option(version=__version__, prog_name="act-parser")
def cli():
    """ACT Parser - Multiple-choice question extractor for ACT practice PDFs."""
    pass


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format", "-f", "test_format",
    default="auto",
    type=click.Choice(FORMAT_CHOICES),
    help="Layout to parse with (auto = detect from filename)",
)
@click.option(
    "--output", "-o",
    default="output",
    help="Output directory for parsed data",
)
@click.option(
    "--save/--no-save",
    default=True,
    help="Save the parse result JSON to the output directory",
)
@click.option(
    "--bundle", "-b",
    is_flag=True,
    default=False,
    help="Also write a storable test bundle (with base64 PDF)",
)
@click.option(
    "--boilerplate",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Boilerplate rules JSON replacing the packaged rules",
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.option(
    "--log-file",
    default=None,
    help="Path to log file",
)
@click.option(
    "--json-output",
    is_flag=True,
    default=False,
    help="Output only JSON result to stdout (for programmatic use)",
)
def parse(
    pdf_path: str,
    test_format: str,
    output: str,
    save: bool,
    bundle: bool,
    boilerplate: str,
    log_level: str,
    log_file: str,
    json_output: bool,
):
    """Parse a single ACT PDF into per-subject questions."""

    if json_output:
        # Suppress console output for JSON mode
        log_level = "ERROR"

    config = ParserConfig(
        output_dir=output,
        save_output=save and not json_output,
        save_bundle=bundle and not json_output,
        boilerplate_path=boilerplate,
        log_level=log_level,
        log_file=log_file,
    )

    if not json_output:
        console.print()
        console.print(
            Panel.fit(
                f"[bold cyan]ACT Parser v{__version__}[/]\n"
                f"[dim]Parsing: {os.path.basename(pdf_path)}[/]",
                border_style="cyan",
            )
        )
        console.print()

    try:
        engine = ParserEngine(config)
        result = engine.parse_file(pdf_path, _format_override(test_format))
    except (FileNotFoundError, ParserError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/] {e}")
        if log_level == "DEBUG":
            console.print_exception()
        sys.exit(1)

    if json_output:
        data = result.model_dump(mode="json")
        if bundle:
            with open(pdf_path, "rb") as f:
                data["bundle"] = build_bundle(
                    result, Path(pdf_path).stem, f.read()
                )
        # Output clean JSON to stdout
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    try:
        _display_results(result)
    except UnicodeEncodeError:
        # Windows console may not support special chars
        print(f"Parse complete: {result.validation.total_questions_detected} questions")
        print(f"Answered: {result.validation.success_rate}%")


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--output", "-o", default="output", help="Output directory")
@click.option(
    "--format", "-f", "test_format",
    default="auto",
    type=click.Choice(FORMAT_CHOICES),
    help="Layout for every file (auto = detect per filename)",
)
@click.option("--bundle", "-b", is_flag=True, default=False,
              help="Write a test bundle per PDF")
@click.option("--log-level", default="WARNING", help="Logging level")
def batch(
    directory: str,
    output: str,
    test_format: str,
    bundle: bool,
    log_level: str,
):
    """Batch parse all PDFs in a directory."""

    pdf_files = sorted(Path(directory).glob("*.pdf"))

    if not pdf_files:
        console.print(f"[yellow]No PDF files found in: {directory}[/]")
        return

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Batch ACT Parser[/]\n"
            f"[dim]Found {len(pdf_files)} PDFs in: {directory}[/]",
            border_style="cyan",
        )
    )
    console.print()

    config = ParserConfig(
        output_dir=output,
        save_output=True,
        save_bundle=bundle,
        log_level=log_level,
    )
    engine = ParserEngine(config)

    results = []
    errors = []

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeRemainingColumn(),
        console=console,
    ) as progress:
        task = progress.add_task(
            "Processing PDFs...", total=len(pdf_files)
        )

        for pdf_file in pdf_files:
            progress.update(
                task,
                description=f"Parsing: {pdf_file.name}",
            )

            try:
                result = engine.parse_file(
                    str(pdf_file), _format_override(test_format)
                )
                results.append((pdf_file.name, result))
            except ParserError as e:
                errors.append((pdf_file.name, str(e)))

            progress.advance(task)

    # Display batch summary
    _display_batch_summary(results, errors)


@cli.command()
@click.argument("filename")
def detect(filename: str):
    """Show which layout a filename would be parsed with."""
    detection = detect_format(filename)

    table = Table(title="Format Detection", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")
    table.add_row("Filename", filename)
    table.add_row("Format", detection.format.value)
    table.add_row("Confidence", f"{detection.confidence:.0%}")
    table.add_row("Reason", detection.reason)

    console.print()
    console.print(table)
    console.print()


@cli.command()
@click.argument("json_path", type=click.Path(exists=True, dir_okay=False))
def validate(json_path: str):
    """Show the validation report of a previously saved parse result."""

    with open(json_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Validation Report[/]\n"
            f"[dim]File: {json_path}[/]",
            border_style="cyan",
        )
    )

    validation = data.get("validation", {})
    _display_validation_table(validation)


@cli.command()
@click.option("--host", default="0.0.0.0", help="Server host")
@click.option("--port", default=5000, type=int, help="Server port")
@click.option("--debug", is_flag=True, default=False, help="Debug mode")
def serve(host: str, port: int, debug: bool):
    """Start the HTTP microservice server."""
    from .server import run_server

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]ACT Parser Microservice[/]\n"
            f"[dim]Starting on {host}:{port}[/]",
            border_style="cyan",
        )
    )
    console.print()

    run_server(host=host, port=port, debug=debug)


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=True, dir_okay=False))
def info(pdf_path: str):
    """Display PDF file information."""

    import fitz

    detection = detect_format(os.path.basename(pdf_path))

    try:
        doc = fitz.open(pdf_path)
    except (RuntimeError, ValueError) as e:
        console.print(f"[red]Error:[/] Cannot open PDF: {e}")
        sys.exit(1)

    console.print()
    table = Table(title="PDF Information", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")

    table.add_row("File", os.path.basename(pdf_path))
    table.add_row("Pages", str(doc.page_count))
    table.add_row(
        "File Size",
        f"{os.path.getsize(pdf_path) / 1024 / 1024:.2f} MB",
    )
    table.add_row("Encrypted", "yes" if doc.needs_pass else "no")
    table.add_row(
        "Detected Format",
        f"{detection.format.value} ({detection.confidence:.0%})",
    )

    metadata = doc.metadata or {}
    for key in ["title", "author", "subject", "creator", "producer"]:
        val = metadata.get(key, "")
        if val:
            table.add_row(key.title(), val)

    doc.close()
    console.print(table)
    console.print()


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _display_results(result):
    """Display parse results in formatted tables."""
    console.print()

    table = Table(title="Test Information", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")
    table.add_row("Format", result.format.value)
    table.add_row("Confidence", f"{result.confidence:.0%}")
    table.add_row("Reason", result.reason)
    table.add_row("Total Pages", str(result.page_count))
    console.print(table)
    console.print()

    sections = Table(title="Sections", border_style="cyan")
    sections.add_column("Subject", style="bold")
    sections.add_column("Questions", justify="right")
    sections.add_column("Answered", justify="right")
    sections.add_column("First Page", justify="right")
    for section in result.sections:
        subject = section.section.value
        answered = sum(
            1 for q in section.questions if q.answer_index is not None
        )
        sections.add_row(
            subject,
            str(len(section.questions)),
            str(answered),
            str(result.section_pages.get(subject, "-")),
        )
    for subject, error in result.section_errors.items():
        sections.add_row(subject, "-", "-", f"[red]{error}[/]")
    console.print(sections)
    console.print()

    # Validation summary
    _display_validation_table(result.validation.model_dump())

    console.print(f"[dim]Parser v{result.parser_version}[/]")
    console.print()


def _display_validation_table(validation: dict):
    """Display validation report as a rich table."""
    table = Table(title="Validation Report", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Status", justify="center")

    total = validation.get("total_questions_detected", 0)
    answered = validation.get("questions_with_answer", 0)
    rate = validation.get("success_rate", 0)

    # Status icons
    def status_icon(count, threshold=0):
        if count <= threshold:
            return "[green]✓[/]"
        return "[red]✗[/]"

    table.add_row(
        "Total Questions Detected",
        str(total),
        "[green]✓[/]" if total > 0 else "[red]✗[/]",
    )
    table.add_row(
        "With Answer",
        f"{answered} ({rate}%)",
        "[green]✓[/]" if rate >= 90 else "[yellow]⚠[/]",
    )

    expected = validation.get("expected_question_counts", {})
    found = validation.get("found_question_counts", {})
    missing = validation.get("missing_question_numbers", {})
    for subject, count in expected.items():
        gaps = len(missing.get(subject, []))
        table.add_row(
            f"{subject.title()} Found",
            f"{found.get(subject, 0)}/{count}",
            status_icon(gaps),
        )

    dupes = validation.get("duplicate_question_ids", [])
    table.add_row(
        "Duplicate Question IDs",
        str(len(dupes)),
        status_icon(len(dupes)),
    )

    missing_ans = validation.get("questions_missing_answer", [])
    table.add_row(
        "Questions Missing Answer",
        str(len(missing_ans)),
        status_icon(len(missing_ans)),
    )

    violations = validation.get("invariant_violations", [])
    table.add_row(
        "Invariant Violations",
        str(len(violations)),
        status_icon(len(violations)),
    )

    console.print(table)
    console.print()

    # Anomaly breakdown
    breakdown = validation.get("anomaly_breakdown", {})
    if breakdown:
        anomaly_table = Table(
            title="Anomaly Breakdown",
            border_style="yellow",
        )
        anomaly_table.add_column("Type", style="bold")
        anomaly_table.add_column("Count", justify="right")

        for atype, count in sorted(breakdown.items()):
            anomaly_table.add_row(atype, str(count))

        console.print(anomaly_table)
        console.print()


def _display_batch_summary(results, errors):
    """Display batch processing summary."""
    console.print()

    table = Table(title="Batch Processing Summary", border_style="cyan")
    table.add_column("PDF", style="bold")
    table.add_column("Format")
    table.add_column("Questions", justify="right")
    table.add_column("Answered", justify="right")
    table.add_column("Anomalies", justify="right")
    table.add_column("Status", justify="center")

    total_questions = 0
    total_anomalies = 0

    for name, result in results:
        q_count = result.validation.total_questions_detected
        rate = result.validation.success_rate
        anomalies = sum(
            result.validation.anomaly_breakdown.values()
        )

        total_questions += q_count
        total_anomalies += anomalies

        status = "[green]✓[/]" if rate >= 90 else "[yellow]⚠[/]"
        table.add_row(
            name,
            result.format.value,
            str(q_count),
            f"{rate}%",
            str(anomalies),
            status,
        )

    for name, error in errors:
        table.add_row(
            name,
            "-",
            "-",
            "-",
            "-",
            "[red]✗ FAILED[/]",
        )

    console.print(table)
    console.print()
    console.print(
        f"[bold]Total:[/] {total_questions} questions from "
        f"{len(results)} PDFs, {total_anomalies} anomalies, "
        f"{len(errors)} failures"
    )
    console.print()


# ─── Entry point (for python -m act_parser.cli) ───────────────────────────────


if __name__ == "__main__":
    cli()
