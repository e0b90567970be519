# Overview: Flask CLI command groups for bootstrap, seeding, and inspection.

# backend/bigdrip/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-email admin@bigdrip.local]
#   Idempotent bootstrap: creates tables, the sale number sequence, and a default admin.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask catalog seed
#   Create the default categories and brands (audited, skips existing rows).
#
# Inspection:
# - python -m flask alerts list [--all]
#   List unacknowledged low-stock alerts.
# - python -m flask sales show BD-000123
#   Print a committed sale as a receipt.
# - python -m flask sales recent [--limit 5]
#   List the most recent sales.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Brand, Category, User
from .models.users import ROLE_ADMIN
from .services import alert_service, sales_service
from .services.audit_service import record_create
from .services.sequence_service import SALE_SEQUENCE, ensure_sequence

DEFAULT_CATEGORIES = [
    ("Sneakers", "Athletic and casual sneakers"),
    ("Apparel", "Clothing and streetwear"),
    ("Accessories", "Bags, caps, socks and more"),
]

DEFAULT_BRANDS = [
    ("Nike", "Just Do It"),
    ("Adidas", "Impossible is Nothing"),
    ("Jordan", "Air Jordan brand"),
    ("Puma", "Forever Faster"),
    ("Vans", "Off The Wall"),
]


def _money(cents) -> str:
    if cents is None:
        return "-"
    return f"{cents / 100:,.2f}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-email', default='admin@bigdrip.local', help='Email of the default admin user')
@click.option('--admin-name', default='Store Admin', help='Full name of the default admin user')
@with_appcontext
def init_system(admin_email, admin_name):
    """
    Initialize the sale engine: tables, sale number sequence, default admin.

    Safe to run repeatedly; existing rows are left untouched.
    """
    click.echo("START Initializing BigDrip POS...")

    db.create_all()
    click.echo("PASS Tables created")

    seq = ensure_sequence(SALE_SEQUENCE)
    click.echo(f"PASS Sale sequence ready (next number: {seq.next_number})")

    admin = db.session.query(User).filter_by(email=admin_email).first()
    if admin:
        click.echo(f"WARN  User '{admin_email}' already exists, skipping...")
    else:
        admin = User(email=admin_email, full_name=admin_name, role=ROLE_ADMIN, is_active=True)
        db.session.add(admin)
        db.session.flush()
        record_create(admin, "user", None)
        click.echo(f"PASS Created admin user: {admin_email} (ID: {admin.id})")

    db.session.commit()
    click.echo("DONE BigDrip POS initialized")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('catalog')
def catalog_group():
    """Catalog bootstrap commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Create default categories and brands, one audit entry per created row."""
    created = 0

    for model, rows, entity_type in (
        (Category, DEFAULT_CATEGORIES, "category"),
        (Brand, DEFAULT_BRANDS, "brand"),
    ):
        for name, description in rows:
            if db.session.query(model).filter_by(name=name).first():
                continue
            row = model(name=name, description=description)
            db.session.add(row)
            db.session.flush()
            record_create(row, entity_type, None)
            created += 1
            click.echo(f"PASS Created {entity_type}: {name}")

    db.session.commit()
    click.echo(f"DONE Catalog seed complete ({created} created)")


@click.group('alerts')
def alerts_group():
    """Low-stock alert inspection."""


@alerts_group.command('list')
@click.option('--all', 'show_all', is_flag=True, help='Include acknowledged alerts')
@with_appcontext
def list_alerts(show_all):
    """List low-stock alerts (unacknowledged only by default)."""
    if show_all:
        alerts = alert_service.list_alerts(include_resolved=True)
    else:
        alerts = alert_service.list_unacknowledged_alerts()

    if not alerts:
        click.echo("No alerts found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'SKU':<16} {'Product':<30} {'Stock':<7} {'Min':<5} {'Status'}")
    click.echo("=" * 80)
    for alert in alerts:
        if alert.resolved_at:
            status = "resolved"
        elif alert.is_acknowledged:
            status = "acknowledged"
        else:
            status = "OPEN"
        click.echo(
            f"{alert.id:<5} {alert.product.sku:<16} {alert.product.name[:30]:<30} "
            f"{alert.current_stock:<7} {alert.threshold:<5} {status}"
        )
    click.echo("=" * 80 + "\n")


@click.group('sales')
def sales_group():
    """Sale inspection."""


@sales_group.command('show')
@click.argument('sale_number')
@with_appcontext
def show_sale(sale_number):
    """Print a committed sale as a receipt."""
    sale = sales_service.get_sale_by_number(sale_number.strip().upper())
    if sale is None:
        raise click.ClickException(f"Sale {sale_number} not found")

    receipt = sales_service.build_receipt(sale)

    click.echo("\n" + "=" * 48)
    click.echo(f"Sale {receipt['sale_number']}   {receipt['created_at']}")
    if receipt["cashier"]:
        click.echo(f"Cashier: {receipt['cashier']['full_name']}")
    if receipt["customer"]:
        click.echo(f"Customer: {receipt['customer']['name']}")
    click.echo("-" * 48)
    for item in receipt["items"]:
        click.echo(
            f"{item['product']['name'][:24]:<24} {item['quantity']:>3} x "
            f"{_money(item['unit_price_cents']):>8} {_money(item['total_price_cents']):>9}"
        )
    click.echo("-" * 48)
    click.echo(f"{'Subtotal':<36}{_money(receipt['subtotal_cents']):>12}")
    if receipt["discount_amount_cents"]:
        click.echo(f"{'Discount':<36}{'-' + _money(receipt['discount_amount_cents']):>12}")
    click.echo(f"{'Tax':<36}{_money(receipt['tax_amount_cents']):>12}")
    click.echo(f"{'TOTAL':<36}{_money(receipt['total_amount_cents']):>12}")
    click.echo(f"{'Paid (' + receipt['payment_method'] + ')':<36}{_money(receipt['amount_paid_cents']):>12}")
    click.echo(f"{'Change':<36}{_money(receipt['change_due_cents']):>12}")
    click.echo("=" * 48 + "\n")


@sales_group.command('recent')
@click.option('--limit', default=5, show_default=True, help='Number of sales to list')
@with_appcontext
def recent_sales(limit):
    """List the most recent sales."""
    sales = sales_service.list_recent_sales(limit)
    if not sales:
        click.echo("No sales found.")
        return
    for sale in sales:
        click.echo(
            f"{sale.sale_number:<12} {sale.created_at:%Y-%m-%d %H:%M}  "
            f"{sale.payment_method:<13} {_money(sale.total_amount_cents):>12}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(alerts_group)
    app.cli.add_command(sales_group)
