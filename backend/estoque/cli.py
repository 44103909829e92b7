# Overview: Flask CLI command groups for bootstrap and stock auditing.

# backend/estoque/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (prefer `flask db upgrade` where migrations are used).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Stock audit:
# - python -m flask stock reconcile
#   Re-derive every product quantity from the movement ledger; exits 1 on drift.
# - python -m flask stock low
#   List products at or below their minimum stock.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import stock_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database initialized.")


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


@click.group('stock')
def stock_group():
    """Stock ledger audit commands."""


@stock_group.command('reconcile')
@with_appcontext
def reconcile():
    """Compare each product's quantity with SUM(IN) - SUM(OUT) of its movements."""
    drift = stock_service.reconcile_stock()
    if not drift:
        click.echo("PASS Stock counters match the ledger.")
        return

    click.echo(f"FAIL {len(drift)} product(s) drifted from the ledger:")
    for row in drift:
        click.echo(
            f"  [{row['product_id']}] {row['sku']}: quantity={row['quantity']} "
            f"ledger={row['ledger_quantity']} difference={row['difference']:+d}"
        )
    raise SystemExit(1)


@stock_group.command('low')
@with_appcontext
def low_stock():
    """List products at or below their minimum stock."""
    products = stock_service.list_low_stock()
    if not products:
        click.echo("No products at or below minimum stock.")
        return

    for p in products:
        click.echo(f"  [{p.id}] {p.sku} {p.name}: quantity={p.quantity} min_stock={p.min_stock}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
