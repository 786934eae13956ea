# Overview: Flask CLI command groups for bootstrap, inspection and stock corrections.

# backend/stockledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to stockledger (PowerShell: $env:FLASK_APP="stockledger").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` where migrations are managed).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Businesses:
# - python -m flask businesses create --name "Corner Shop" --tax-rate-bps 500
# - python -m flask businesses list
#
# Products / stock:
# - python -m flask products create --business-id 1 --name "Cola" --cost-cents 60 --price-cents 100 --stock 24 --threshold 5
# - python -m flask products list --business-id 1
# - python -m flask products deduct 3 --business-id 1 --quantity 2
#   Scan-to-deduct correction (same atomic path as the scanner).
#
# Alerts:
# - python -m flask alerts list --business-id 1

import click
from flask.cli import with_appcontext

from .errors import LedgerError
from .extensions import db
from .models import Business, Product
from .services import alert_service, business_service, inventory_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.confirm("This deletes ALL data. Continue?", abort=True)
    db.drop_all()
    db.create_all()
    click.echo("Database reset")


@click.group('businesses')
def businesses_group():
    """Business (tenant) commands."""


@businesses_group.command('create')
@click.option('--name', required=True, help='Business name')
@click.option('--tax-rate-bps', type=int, default=0, show_default=True, help='Tax rate in basis points (825 = 8.25%)')
@click.option('--currency', default='USD', show_default=True)
@with_appcontext
def create_business_cli(name, tax_rate_bps, currency):
    try:
        business = business_service.create_business(name, tax_rate_bps=tax_rate_bps, currency=currency)
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(f"Created business {business.id}: {business.name} (tax {tax_rate_bps} bps)")


@businesses_group.command('list')
@with_appcontext
def list_businesses_cli():
    businesses = db.session.query(Business).order_by(Business.id.asc()).all()
    if not businesses:
        click.echo("No businesses")
        return
    for b in businesses:
        click.echo(f"{b.id:>5}  {b.name:<30} tax={b.tax_rate_bps}bps currency={b.currency}")


@click.group('products')
def products_group():
    """Product and stock commands."""


@products_group.command('create')
@click.option('--business-id', type=int, required=True)
@click.option('--name', required=True)
@click.option('--cost-cents', type=int, default=0, show_default=True)
@click.option('--price-cents', type=int, default=0, show_default=True)
@click.option('--stock', type=int, default=0, show_default=True)
@click.option('--threshold', type=int, default=5, show_default=True, help='Low-stock threshold')
@with_appcontext
def create_product_cli(business_id, name, cost_cents, price_cents, stock, threshold):
    if db.session.get(Business, business_id) is None:
        raise click.ClickException(f"Business {business_id} not found")
    try:
        product = inventory_service.create_product(
            business_id=business_id,
            name=name,
            cost_price_cents=cost_cents,
            sale_price_cents=price_cents,
            stock=stock,
            low_stock_threshold=threshold,
        )
    except (ValueError, LedgerError) as e:
        raise click.ClickException(str(e))
    click.echo(f"Created product {product.id}: {product.name} stock={product.stock}")


@products_group.command('list')
@click.option('--business-id', type=int, required=True)
@with_appcontext
def list_products_cli(business_id):
    products = (
        db.session.query(Product)
        .filter_by(business_id=business_id)
        .order_by(Product.name.asc())
        .all()
    )
    for p in products:
        flag = " LOW" if p.is_low_stock else ""
        click.echo(f"{p.id:>5}  {p.name:<30} stock={p.stock:<6} threshold={p.low_stock_threshold}{flag}")


@products_group.command('deduct')
@click.argument('product_id', type=int)
@click.option('--business-id', type=int, required=True)
@click.option('--quantity', type=int, default=1, show_default=True)
@with_appcontext
def deduct_product_cli(product_id, business_id, quantity):
    """Deduct units from stock without recording a sale."""
    if quantity < 1:
        raise click.ClickException("quantity must be >= 1")
    try:
        result = inventory_service.deduct_stock(business_id, product_id, quantity)
    except LedgerError as e:
        raise click.ClickException(f"{e.code}: {e}")
    click.echo(f"Deducted {result.deducted}; stock now {result.new_stock}")
    if result.alert is not None:
        click.echo(f"Low-stock alert {result.alert.id} open (threshold {result.alert.threshold})")


@click.group('alerts')
def alerts_group():
    """Low-stock alert inspection."""


@alerts_group.command('list')
@click.option('--business-id', type=int, required=True)
@with_appcontext
def list_alerts_cli(business_id):
    alerts = alert_service.list_open_alerts(business_id)
    if not alerts:
        click.echo("No open alerts")
        return
    for a in alerts:
        click.echo(f"{a.id:>5}  product={a.product_id} stock={a.current_stock} threshold={a.threshold}")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(businesses_group)
    app.cli.add_command(products_group)
    app.cli.add_command(alerts_group)
