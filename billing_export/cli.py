"""
Command-line interface for the billing export pipeline.

Provides four commands:
- billing: Generate the billing document from an Invoice Summary
- credit-notes: Generate the credit-note document using a ledger export
- check: Read and validate an Invoice Summary without writing anything
- version: Show version information
"""

from pathlib import Path
from typing import List, Optional

import typer

from .canonicalizer import parse_month_argument
from .config import ARTIFACT_DIR, INVOICE_STORE_PATH, STRICT_MONTH_INFERENCE, logger
from .errors import PipelineError
from .ports import FileSystemArtifactStore, JsonInvoiceStore
from .pipeline import run_billing, run_credit_notes
from .reader import read_invoice_summary
from .schemas import RunReport
from .validator import validate_batch, format_summary_text


# Create Typer app
app = typer.Typer(
    name="billing-export",
    help="Invoice Summary to accounting import CLI",
    add_completion=False,
)


def _parse_month(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    month = parse_month_argument(value)
    if month is None:
        raise typer.BadParameter(f"'{value}' is not a month")
    return month


def _print_report(report: RunReport, output_dir: Path) -> None:
    typer.echo(f"\n[OK] {report.message}")
    typer.echo(f"  Artifact:     {output_dir / report.artifact_name}")
    typer.echo(f"  Jurisdiction: {report.jurisdiction}")
    typer.echo(f"  Period:       {report.month:02d}/{report.year} (month from {report.month_source})")
    typer.echo(f"  Records read: {report.records_read}")
    if report.invoices_inserted or report.invoices_updated:
        typer.echo(f"  Invoices:     {report.invoices_inserted} inserted, {report.invoices_updated} updated")
    if report.invoices_reconciled:
        typer.echo(f"  Reconciled:   {report.invoices_reconciled}")
    if report.month_source == "current_month":
        typer.echo("  Warning: no month in filename, the current month was used", err=True)


SUMMARY_OPTION = typer.Option(
    ...,
    "--summary",
    "-s",
    help="Invoice Summary workbook (.xlsx)",
    exists=True,
    file_okay=True,
    dir_okay=False,
    resolve_path=True,
)


@app.command()
def billing(
    summary: Path = SUMMARY_OPTION,
    output_dir: Path = typer.Option(
        ARTIFACT_DIR,
        "--output-dir",
        "-o",
        help="Directory receiving the generated workbook",
    ),
    store: Path = typer.Option(
        INVOICE_STORE_PATH,
        "--store",
        help="JSON file holding agencies, clients and invoices",
    ),
    month: Optional[str] = typer.Option(
        None,
        "--month",
        "-m",
        help="Reporting month (1-12 or name); inferred from the filename if omitted",
    ),
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Reporting year (default: current year)"),
    strict_month: bool = typer.Option(
        STRICT_MONTH_INFERENCE,
        "--strict-month",
        help="Fail when the filename names no month instead of using the current month",
    ),
) -> None:
    """
    Generate the billing document from an Invoice Summary.

    Validates every row, upserts the invoices into the store and writes
    Facturacion_<Mes>_<JUR>.xlsx into the output directory.
    """
    typer.echo(f"Generating billing document from: {summary}")

    try:
        report = run_billing(
            summary.read_bytes(),
            summary.name,
            JsonInvoiceStore(store),
            FileSystemArtifactStore(output_dir),
            month=_parse_month(month),
            year=year,
            strict_month=strict_month,
        )
        _print_report(report, output_dir)

    except PipelineError as e:
        typer.echo(f"Error [{e.code}]: {e.message}", err=True)
        raise typer.Exit(code=1)
    except typer.BadParameter:
        raise
    except Exception as e:
        typer.echo(f"Error during billing run: {e}", err=True)
        logger.exception("Billing run failed")
        raise typer.Exit(code=1)


@app.command("credit-notes")
def credit_notes(
    summary: Path = SUMMARY_OPTION,
    ledger: Path = typer.Option(
        ...,
        "--ledger",
        "-l",
        help="Ledger export workbook (.xlsx) with assigned document numbers",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    eligible: Optional[List[str]] = typer.Option(
        None,
        "--eligible",
        "-e",
        help="Agency receiving credit notes (repeatable); read from the store if omitted",
    ),
    output_dir: Path = typer.Option(
        ARTIFACT_DIR,
        "--output-dir",
        "-o",
        help="Directory receiving the generated workbook",
    ),
    store: Path = typer.Option(
        INVOICE_STORE_PATH,
        "--store",
        help="JSON file holding agencies, clients and invoices",
    ),
    month: Optional[str] = typer.Option(None, "--month", "-m", help="Reporting month (1-12 or name)"),
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Reporting year (default: current year)"),
    strict_month: bool = typer.Option(
        STRICT_MONTH_INFERENCE,
        "--strict-month",
        help="Fail when the filename names no month instead of using the current month",
    ),
) -> None:
    """
    Generate the credit-note document.

    Matches summary invoices against the ledger export and writes
    NotasCredito_<Mes>_<JUR>.xlsx for eligible agencies.
    """
    typer.echo(f"Generating credit notes from: {summary}")
    typer.echo(f"Ledger export: {ledger}")

    try:
        report = run_credit_notes(
            summary.read_bytes(),
            summary.name,
            ledger.read_bytes(),
            JsonInvoiceStore(store),
            FileSystemArtifactStore(output_dir),
            eligible_agencies=set(eligible) if eligible else None,
            month=_parse_month(month),
            year=year,
            strict_month=strict_month,
        )
        _print_report(report, output_dir)

    except PipelineError as e:
        typer.echo(f"Error [{e.code}]: {e.message}", err=True)
        raise typer.Exit(code=1)
    except typer.BadParameter:
        raise
    except Exception as e:
        typer.echo(f"Error during credit-note run: {e}", err=True)
        logger.exception("Credit-note run failed")
        raise typer.Exit(code=1)


@app.command()
def check(summary: Path = SUMMARY_OPTION) -> None:
    """
    Read and validate an Invoice Summary without writing anything.
    """
    typer.echo(f"Checking invoice summary: {summary}")

    result = read_invoice_summary(summary.read_bytes())
    if not result.ok:
        typer.echo(f"Error [{result.error_code}]: {result.error}", err=True)
        raise typer.Exit(code=1)

    validation = validate_batch(result.records)
    typer.echo("\n" + format_summary_text(
        validation,
        skipped_total=result.skipped_total_rows,
        skipped_incomplete=result.skipped_incomplete_rows,
    ))

    if not validation.is_valid:
        raise typer.Exit(code=1)


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__
    typer.echo(f"Billing Export v{__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
