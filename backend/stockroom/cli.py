# Overview: Flask CLI command groups for bootstrap, catalog import/export and stock inspection.

# backend/stockroom/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask catalog import products.csv
#   Import a CSV/XLSX product sheet (Korean header row).
# - python -m flask catalog export --out products.csv
#   Write the full catalog as CSV (UTF-8 with BOM).
#
# Stock:
# - python -m flask stock low --threshold 50
#   List products at or below the threshold.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import import_service
from .services.export_service import export_products_csv
from .services.stock_service import list_low_stock


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables (idempotent)."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('catalog')
def catalog_group():
    """Product catalog import / export."""


@catalog_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_catalog(path):
    """Import products from a CSV or XLSX file."""
    with open(path, 'rb') as fh:
        try:
            result = import_service.import_products_file(fh, path)
        except import_service.ImportFileError as e:
            raise click.ClickException(str(e))

    click.echo(f"Rows: {result['total']}  created: {result['created']}  failed: {result['failed']}")
    for err in result['errors']:
        click.echo(f"  row {err['row']}: {err['error']}")


@catalog_group.command('export')
@click.option('--out', 'out_path', default=None, help='Output file (default: generated products_*.csv name)')
@with_appcontext
def export_catalog(out_path):
    """Export the whole catalog as CSV."""
    body, filename = export_products_csv()
    target = out_path or filename
    with open(target, 'wb') as fh:
        fh.write(body)
    click.echo(f"PASS Wrote {target}")


@click.group('stock')
def stock_group():
    """Stock inspection commands."""


@stock_group.command('low')
@click.option('--threshold', type=int, default=None, help='Default: LOW_STOCK_THRESHOLD')
@with_appcontext
def low_stock(threshold):
    """List products at or below the low-stock threshold."""
    result = list_low_stock(threshold=threshold)

    click.echo(f"\nLow stock (<= {result['threshold']}): {result['count']} products")
    click.echo("=" * 72)
    click.echo(f"{'Code':<14} {'Name':<36} {'Stock':>8}  Status")
    click.echo("-" * 72)
    for item in result['items']:
        click.echo(f"{item['product_code']:<14} {(item['name'] or '')[:36]:<36} {item['stock']:>8}  {item['status']}")
    click.echo("=" * 72 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(stock_group)
