# Overview: Flask CLI command groups for catalog bootstrap and ledger inspection.

# backend/portal/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to portal (PowerShell: $env:FLASK_APP="portal").
# - Use: python -m flask <group> <command> [options]
#
# Catalog:
# - python -m flask catalog seed
#   Insert the default beverage catalog (idempotent, matched by SKU).
# - python -m flask catalog add --sku PEPSI-355-24 --name "Pepsi 355ml (24)" --price 17000 --category CAN [--qualifying]
#   Add one product; fails on a duplicate SKU.
# - python -m flask catalog list [--all]
#   List products with category, price and qualifying-family flag.
#
# Businesses:
# - python -m flask business create --number "123-45-67890" --name "Cafe" --phone "010-0000-0000" --address "Seoul"
#   Register a member business.
#
# Usage ledger:
# - python -m flask usage show 123-45-67890 [--month 2026-10]
#   Show free boxes used and remaining for a business in a month.

import click
from flask import current_app
from flask.cli import with_appcontext

from .services import business_service, catalog_service, usage_ledger_service
from .models.catalog import PRODUCT_CATEGORIES
from .validation import ConflictError, ValidationError


@click.group('catalog')
def catalog_group():
    """Product catalog commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Insert default products that are missing."""
    created = catalog_service.seed_default_products()
    click.echo(f"Seeded {created} product(s).")


@catalog_group.command('add')
@click.option('--sku', required=True)
@click.option('--name', required=True)
@click.option('--price', type=int, required=True, help='Price per box (KRW).')
@click.option('--category', type=click.Choice(sorted(PRODUCT_CATEGORIES), case_sensitive=False), required=True)
@click.option('--qualifying', is_flag=True, help='Counts as a qualifying-family product for 3+1.')
@click.option('--sort-order', type=int, default=0)
@with_appcontext
def add_product(sku: str, name: str, price: int, category: str, qualifying: bool, sort_order: int):
    """Add one product to the catalog."""
    try:
        product = catalog_service.create_product({
            "sku": sku,
            "name": name,
            "price": price,
            "category": category,
            "is_qualifying_family": qualifying,
            "sort_order": sort_order,
        })
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"Created product {product.id} ({product.sku}).")


@catalog_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive products.')
@with_appcontext
def list_catalog(include_inactive: bool):
    """List catalog products."""
    products = catalog_service.list_products(include_inactive=include_inactive)
    if not products:
        click.echo("No products.")
        return
    for p in products:
        flag = "Q" if p.is_qualifying_family else "-"
        state = "" if p.is_active else " (inactive)"
        click.echo(f"{p.id:>4} [{flag}] {p.category:<6} {p.price:>8} {p.name}{state}")


@click.group('business')
def business_group():
    """Member business commands."""


@business_group.command('create')
@click.option('--number', 'business_number', prompt=True, help='Business registration number.')
@click.option('--name', 'business_name', prompt=True, help='Business name.')
@click.option('--phone', default=None)
@click.option('--address', default=None)
@with_appcontext
def create_business(business_number: str, business_name: str, phone: str | None, address: str | None):
    """Register a member business."""
    try:
        business = business_service.create_business(
            business_number=business_number,
            business_name=business_name,
            phone=phone,
            address=address,
        )
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"Created business {business.id} ({business.business_number}).")


@click.group('usage')
def usage_group():
    """Monthly free-box usage commands."""


@usage_group.command('show')
@click.argument('business_number')
@click.option('--month', 'year_month', default=None, help='YYYY-MM (default: current month).')
@with_appcontext
def show_usage(business_number: str, year_month: str | None):
    """Show used and remaining free boxes."""
    try:
        summary = usage_ledger_service.usage_summary(
            business_number,
            year_month or usage_ledger_service.current_year_month(),
            current_app.config["MONTHLY_FREE_BOX_CAP"],
        )
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(
        f"{summary['business_number']} {summary['year_month']}: "
        f"used {summary['used_free_boxes']}/{summary['monthly_cap']}, "
        f"remaining {summary['remaining_free_boxes']}"
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(catalog_group)
    app.cli.add_command(business_group)
    app.cli.add_command(usage_group)
