# Overview: Flask CLI command groups for bootstrap and catalog inspection.

# backend/backoffice/cli.py
# Commands (from backend/, with FLASK_APP=backoffice):
#
# Schema:
# - python -m flask system init
#   Create missing tables; existing data is kept.
# - python -m flask db upgrade
#   Same schema through the Alembic migrations (preferred outside dev).
# - python -m flask system reset-db --yes
#   Wipe everything and start from an empty schema.
#
# Catalog:
# - python -m flask products create --name "Coffee 500g" --price 1890 --buy-price 1200
#   Create a product (prices in cents) with an empty stock row.
# - python -m flask products list
#   List products with prices and quantity on hand.

import click
from flask import current_app
from flask.cli import with_appcontext

from . import money
from .errors import ValidationError
from .extensions import db
from .models import Product
from .services.products_service import create_product
from .validation import check_product_prices


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create every table that does not exist yet."""
    db.create_all()
    click.echo("PASS Database schema ready.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Do not ask before wiping the database')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: wipe products, stock, purchases, sales and payments."""
    if not yes:
        click.confirm("WARN Every purchase, sale and stock count will be lost. Continue?", abort=True)

    tables = [t.name for t in db.metadata.sorted_tables]
    click.echo(f"DELETE  Dropping {len(tables)} tables: {', '.join(reversed(tables))}")
    db.drop_all()
    db.create_all()
    click.echo("PASS Empty schema recreated.")


@click.group('products')
def products_group():
    """Product catalog commands."""


@products_group.command('create')
@click.option('--name', required=True, help='Product name')
@click.option('--price', 'price_cents', required=True, type=int, help='Selling price in cents')
@click.option('--buy-price', 'buy_price_cents', type=int, default=None, help='Default purchase cost in cents')
@with_appcontext
def create_product_cli(name, price_cents, buy_price_cents):
    """Create a product with an empty stock row."""
    patch = {"name": name.strip(), "price_cents": price_cents, "buy_price_cents": buy_price_cents}
    try:
        if not patch["name"]:
            raise ValidationError("name cannot be blank", field="name")
        check_product_prices(patch)
    except ValidationError as e:
        click.echo(f"FAIL {e.message}")
        raise click.exceptions.Exit(1)

    created = create_product(patch=patch)
    click.echo(f"PASS Created product: {created['name']} (ID: {created['id']})")


@products_group.command('list')
@with_appcontext
def list_products_cli():
    """List products with prices and quantity on hand."""
    products = db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()

    if not products:
        click.echo("No products found.")
        return

    fmt = money.format_from_config(current_app.config)

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<35} {'Price':>12} {'Buy price':>12} {'On hand':>10}")
    click.echo("="*80)

    for p in products:
        buy_price = money.to_display(p.buy_price_cents, fmt) if p.buy_price_cents is not None else "-"
        on_hand = p.stock.quantity if p.stock else 0
        click.echo(f"{p.id:<5} {p.name:<35} {money.to_display(p.price_cents, fmt):>12} {buy_price:>12} {on_hand:>10}")

    click.echo("="*80 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(products_group)
