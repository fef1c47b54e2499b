#!/usr/bin/env python3
"""
PO Ingestion Service — CLI entry point.

Usage examples:
  python main.py check                              # Verify setup (database, settings)
  python main.py preview zepto_po.csv               # Parse a file, print the preview JSON
  python main.py preview po.xlsx --vendor swiggy    # Skip detection
  python main.py import zepto_po.csv --user ops     # Parse and store
  python main.py list --vendor blinkit --status Open
  python main.py serve --port 8000                  # Run the dashboard API
  python main.py upload po.xlsx --url http://po-api:8000
"""
import json
import logging
import sys
from pathlib import Path

import click

from config import Config
from pipeline.database import Database
from pipeline.detector import VENDORS, detect_and_parse
from pipeline.errors import DuplicatePOError, InvalidPOError, POImportError, POParseError
from pipeline.importer import POImporter


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quieten noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


_VENDOR_CHOICE = click.Choice(list(VENDORS), case_sensitive=False)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """PO Ingestion Service — parse, preview, and import platform purchase orders."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _setup_logging(verbose)


def _parse_file(path: Path, vendor: str | None, user: str):
    try:
        return detect_and_parse(path.read_bytes(), filename=path.name, uploaded_by=user, platform=vendor)
    except POParseError as exc:
        click.echo(f"Error: could not parse {path.name}: {exc}", err=True)
        sys.exit(1)


# --------------------------------------------------------------------
# check command
# --------------------------------------------------------------------

@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Verify that the database is reachable and show the active settings."""
    config = Config()

    click.echo("\n=== PO Service Setup Check ===\n")
    try:
        config.ensure_output_dir()
        stats = Database(config.db_path).get_stats()
        click.echo(f"  Database:      ✓  {config.db_path} ({stats['total']} POs)")
    except Exception as exc:
        click.echo(f"  Database:      ✗  {config.db_path} ({exc})")

    click.echo(f"  Upload limit:  {config.max_upload_bytes} bytes")
    click.echo(f"  API URL:       {config.api_base_url}")
    click.echo(f"  Vendors:       {', '.join(spec.label for spec in VENDORS.values())}")
    click.echo()


# --------------------------------------------------------------------
# preview / import commands
# --------------------------------------------------------------------

@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--vendor", "-p", type=_VENDOR_CHOICE, default=None, help="Vendor parser to use (default: detect)")
@click.pass_context
def preview(ctx: click.Context, file: str, vendor: str | None) -> None:
    """Parse FILE and print the preview JSON without storing anything."""
    from dashboard.services import build_preview

    config = Config()
    detection = _parse_file(Path(file), vendor, config.default_uploaded_by)
    click.echo(json.dumps(build_preview(detection), indent=2))


@cli.command(name="import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--vendor", "-p", type=_VENDOR_CHOICE, default=None, help="Vendor parser to use (default: detect)")
@click.option("--user", "-u", default=None, help="Recorded as uploaded_by")
@click.pass_context
def import_(ctx: click.Context, file: str, vendor: str | None, user: str | None) -> None:
    """Parse FILE and store every PO it contains."""
    config = Config()
    config.ensure_output_dir()
    user = user or config.default_uploaded_by
    detection = _parse_file(Path(file), vendor, user)

    importer = POImporter(Database(config.db_path))
    failed = 0
    for po in detection.pos:
        header = po.header.model_dump(mode="json")
        lines = [line.model_dump(mode="json") for line in po.lines]
        try:
            po_id = importer.import_po(detection.vendor, header, lines, actor=user)
        except (InvalidPOError, DuplicatePOError, POImportError) as exc:
            failed += 1
            click.echo(f"  ✗ {po.po_number}: {exc}")
            continue
        click.echo(f"  ✓ {po.po_number}  id={po_id}  {po.total_items} lines  total {po.header.total_amount}")

    click.echo(f"\nImported {len(detection.pos) - failed} of {len(detection.pos)} POs ({detection.vendor}).")
    if failed:
        sys.exit(1)


# --------------------------------------------------------------------
# list command
# --------------------------------------------------------------------

@cli.command(name="list")
@click.option("--vendor", "-p", type=_VENDOR_CHOICE, default=None)
@click.option("--status", "-s", default=None)
@click.option("--search", default=None, help="Substring of PO number or supplier")
@click.option("--limit", default=50, show_default=True)
@click.pass_context
def list_(ctx: click.Context, vendor: str | None, status: str | None, search: str | None, limit: int) -> None:
    """List stored POs, newest first."""
    config = Config()
    db = Database(config.db_path)
    rows = db.list_pos(vendor=vendor, status=status, search=search, limit=limit)
    if not rows:
        click.echo("No POs found.")
        return
    for row in rows:
        click.echo(
            f"  {row['id']:>5}  {row['vendor']:<10} {row['po_number']:<24} {row['status']:<10}"
            f" {row['order_date'] or '-':<10}  {row['line_count']:>4} lines  {row['total_amount'] or '-'}"
        )


# --------------------------------------------------------------------
# serve / upload commands
# --------------------------------------------------------------------

@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Run the dashboard API with uvicorn."""
    import uvicorn

    uvicorn.run("dashboard.app:app", host=host, port=port, log_level="debug" if ctx.obj["verbose"] else "info")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--vendor", "-p", type=_VENDOR_CHOICE, default=None)
@click.option("--url", default=None, help="API base URL (default: PO_API_URL)")
@click.option("--user", "-u", default=None)
@click.pass_context
def upload(ctx: click.Context, file: str, vendor: str | None, url: str | None, user: str | None) -> None:
    """Preview and import FILE through a running API."""
    import httpx

    from dashboard.client import POApiClient

    path = Path(file)
    with POApiClient(base_url=url, user=user) as client:
        try:
            payload = client.preview(path.read_bytes(), path.name, platform=vendor)
            result = client.import_po(payload["detectedVendor"], payload)
        except httpx.HTTPStatusError as exc:
            click.echo(f"Error: {exc.response.status_code} {exc.response.text}", err=True)
            sys.exit(1)
        except httpx.TransportError as exc:
            click.echo(f"Error: API not reachable ({exc})", err=True)
            sys.exit(1)
    click.echo(json.dumps(result, indent=2))


if __name__ == "__main__":
    cli()
