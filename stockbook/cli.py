# Overview: Flask CLI command group for bootstrap, inspection, and ledger maintenance.

# stockbook/cli.py
# Commands Legend:
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP (e.g. export FLASK_APP="stockbook:create_app").
# - Use: python -m flask ledger <command> [options]
#
# - python -m flask ledger init-db
#   DEV only: create all tables from the models (production uses `flask db upgrade`).
# - python -m flask ledger verify --owner user_123
#   Compare cached customer/supplier/product aggregates with their source rows.
#   Exits with status 1 when anything disagrees.
# - python -m flask ledger movements --owner user_123 --product 42 [--type OUT]
#   Print the stock history of one product, newest first.

import sys

import click
from flask.cli import with_appcontext

from .errors import LedgerError
from .extensions import db
from .models.inventory import MOVEMENT_TYPES
from .services import reconcile_service, stock_service


@click.group('ledger')
def ledger_group():
    """Ledger bootstrap and verification commands."""


@ledger_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
    db.create_all()
    click.echo("PASS Tables created.")


@ledger_group.command('verify')
@click.option('--owner', 'owner_id', required=True, help='Owner (tenant) id')
@with_appcontext
def verify(owner_id):
    """Report aggregate mismatches for one owner; read-only."""
    mismatches = reconcile_service.verify_all(owner_id)
    if not mismatches:
        click.echo(f"PASS Ledger consistent for owner {owner_id}.")
        return

    click.echo(f"FAIL {len(mismatches)} mismatch(es) for owner {owner_id}:")
    for m in mismatches:
        click.echo(
            f"  {m['entity']} {m['id']} {m['field']}: cached={m['cached']} expected={m['expected']}"
        )
    sys.exit(1)


@ledger_group.command('movements')
@click.option('--owner', 'owner_id', required=True, help='Owner (tenant) id')
@click.option('--product', 'product_id', required=True, type=int, help='Product id')
@click.option('--type', 'movement_type', type=click.Choice(sorted(MOVEMENT_TYPES)), default=None)
@with_appcontext
def movements(owner_id, product_id, movement_type):
    """Print stock history for a product."""
    try:
        rows = stock_service.get_stock_movements(owner_id, product_id, movement_type)
    except LedgerError as exc:
        raise click.ClickException(exc.message)

    if not rows:
        click.echo("No movements.")
        return

    for m in rows:
        click.echo(
            f"{m.created_at:%Y-%m-%d %H:%M:%S}  {m.movement_type:<6} {m.quantity:>6}  "
            f"{m.previous_stock:>6} -> {m.new_stock:<6}  {m.reason or ''}"
            + (f"  [{m.reference}]" if m.reference else "")
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(ledger_group)
