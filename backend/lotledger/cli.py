# Overview: Flask CLI command groups for bootstrap and inventory inspection.

# backend/lotledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to lotledger (PowerShell: $env:FLASK_APP="lotledger").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inventory inspection:
# - python -m flask inventory stock
#   Stock, FIFO value and reference cost per active product.
# - python -m flask inventory lots 12 [--open-only]
#   Lots for a product in FIFO order.
# - python -m flask inventory reconcile [--product-id 12]
#   Compare movement stock with lot stock; exits 1 when anything is unbalanced.
#
# Purchases:
# - python -m flask purchases post 7 [--update-cost-price]
#   Post a DRAFT purchase.

import sys

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import lot_service, purchase_service, reporting_service
from .services.errors import InventoryError
from .time_utils import to_utc_z


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Schema created")


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
    click.echo("BUILD Creating all tables...")
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('inventory')
def inventory_group():
    """FIFO stock inspection commands."""


@inventory_group.command('stock')
@with_appcontext
def show_stock():
    """Stock and FIFO value per active product."""
    rows = reporting_service.stock_overview()
    if not rows:
        click.echo("No products found.")
        return

    click.echo(f"{'ID':<6} {'Title':<32} {'Stock':>8} {'Lots':>8} {'Value':>12}")
    for row in rows:
        click.echo(
            f"{row['product_id']:<6} {row['title'][:32]:<32} "
            f"{row['current_stock']:>8} {row['lot_stock']:>8} {row['inventory_value_cents']:>12}"
        )


@inventory_group.command('lots')
@click.argument('product_id', type=int)
@click.option('--open-only', is_flag=True, help='Hide exhausted lots')
@with_appcontext
def show_lots(product_id, open_only):
    """List lots for PRODUCT_ID in FIFO order."""
    try:
        lots = lot_service.list_lots(product_id, include_exhausted=not open_only)
    except InventoryError as e:
        raise click.ClickException(str(e))

    if not lots:
        click.echo("No lots.")
        return

    for lot in lots:
        click.echo(
            f"lot {lot.id:<6} received {to_utc_z(lot.received_at)}  "
            f"{lot.qty_remaining:>6}/{lot.qty_received:<6} @ {lot.unit_cost_cents}"
            f"  purchase={lot.purchase_id}"
        )


@inventory_group.command('reconcile')
@click.option('--product-id', type=int, default=None, help='Only check this product')
@with_appcontext
def reconcile(product_id):
    """Check SUM(movements) == SUM(lot qty_remaining) per product."""
    rows = reporting_service.reconcile(product_id)
    unbalanced = [row for row in rows if not row["balanced"]]

    for row in unbalanced:
        click.echo(
            f"WARN product {row['product_id']} ({row['title']}): "
            f"movements={row['stock_from_movements']} lots={row['stock_from_lots']} "
            f"uncosted={row['uncosted_quantity']}"
        )

    if unbalanced:
        click.echo(f"FAIL {len(unbalanced)} of {len(rows)} products unbalanced")
        sys.exit(1)
    click.echo(f"PASS {len(rows)} products balanced")


@click.group('purchases')
def purchases_group():
    """Purchase lifecycle commands."""


@purchases_group.command('post')
@click.argument('purchase_id', type=int)
@click.option('--update-cost-price', is_flag=True, help='Write reference cost to products')
@with_appcontext
def post_purchase(purchase_id, update_cost_price):
    """Post DRAFT purchase PURCHASE_ID."""
    try:
        result = purchase_service.post_purchase(purchase_id, update_cost_price=update_cost_price)
    except InventoryError as e:
        raise click.ClickException(str(e))

    click.echo(
        f"PASS Posted purchase {purchase_id}: "
        f"{result['lots_created']} lots, {result['movements_created']} movements"
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(purchases_group)
