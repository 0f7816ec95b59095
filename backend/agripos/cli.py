# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/agripos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system seed-demo
#   Idempotently create a demo branch, products and stock.
#
# Reservations:
# - python -m flask reservations expire
#   Release active reservations past their expiry. Run from cron/systemd timer.
#
# Sessions:
# - python -m flask sessions list --status open --branch-id 1 --limit 20
#   List recent POS sessions with totals and variance.

import click
from decimal import Decimal
from flask.cli import with_appcontext

from .extensions import db
from .models import Branch, Product
from .services import inventory_service, reservation_service, session_service
from .time_utils import parse_iso_datetime


DEMO_BRANCH = {"name": "Main Branch", "code": "MAIN", "address": "Poblacion"}

DEMO_PRODUCTS = [
    # sku, name, unit, price_cents, weight_based, stock
    ("FEED-HOG-GRW", "Hog Grower Feed", "kg", 4850, True, Decimal("250")),
    ("FEED-CHK-LAY", "Chicken Layer Pellets", "kg", 3900, True, Decimal("180")),
    ("VET-IVM-50", "Ivermectin 50ml", "btl", 18500, False, Decimal("24")),
    ("VET-VITB-100", "Vitamin B Complex 100ml", "btl", 22000, False, Decimal("12")),
    ("SUP-DEWORM", "Dewormer Tablets (10s)", "pack", 9500, False, Decimal("40")),
]


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db_cli():
    """Create missing tables."""
    from . import models  # noqa: F401

    db.create_all()
    click.echo("✓ Database tables created")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo_cli():
    """
    Seed a demo branch with products and stock.

    Safe to run more than once: existing rows are reused.
    """
    branch = db.session.query(Branch).filter_by(code=DEMO_BRANCH["code"]).first()
    if not branch:
        branch = Branch(**DEMO_BRANCH)
        db.session.add(branch)
        db.session.flush()
        click.echo(f"✓ Created branch: {branch.name}")
    else:
        click.echo(f"Branch exists: {branch.name}")

    for sku, name, unit, price, weight_based, stock in DEMO_PRODUCTS:
        product = db.session.query(Product).filter_by(sku=sku).first()
        if not product:
            product = Product(
                sku=sku,
                name=name,
                unit_of_measure=unit,
                price_cents=price,
                is_weight_based=weight_based,
            )
            db.session.add(product)
            db.session.flush()
            click.echo(f"✓ Created product: {sku}")

        if inventory_service.get_inventory(branch.id, product.id) is None:
            inventory_service.set_stock(
                branch_id=branch.id,
                product_id=product.id,
                quantity_on_hand=stock,
                reorder_level=stock / 5,
                note="Demo seed",
                commit=False,
            )

    db.session.commit()
    click.echo("✓ Demo data ready")


@click.group('reservations')
def reservations_group():
    """Inventory reservation maintenance."""


@reservations_group.command('expire')
@click.option('--now', 'now_str', help='Treat this ISO-8601 time as now (testing)')
@with_appcontext
def expire_reservations_cli(now_str):
    """
    Release reservations past their expiry.

    Example:
        flask reservations expire
    """
    try:
        now = parse_iso_datetime(now_str)
    except ValueError:
        raise click.BadParameter("must be an ISO-8601 datetime", param_hint="--now")

    released = reservation_service.expire_reservations(now=now)
    click.echo(f"✓ Released {released} expired reservation(s)")


@click.group('sessions')
def sessions_group():
    """POS session inspection."""


@sessions_group.command('list')
@click.option('--branch-id', type=int, help='Filter by branch ID')
@click.option('--status', type=click.Choice(['open', 'suspended', 'closed']), help='Filter by status')
@click.option('--limit', type=int, default=20, help='Max sessions to show')
@with_appcontext
def list_sessions_cli(branch_id, status, limit):
    """
    List POS sessions.

    Example:
        flask sessions list
        flask sessions list --branch-id 1
        flask sessions list --status open
    """
    sessions = session_service.list_sessions(branch_id=branch_id, status=status, limit=limit)

    if not sessions:
        click.echo("No sessions found.")
        return

    click.echo("\n" + "="*120)
    click.echo(f"{'ID':<5} {'Number':<24} {'Cashier':<8} {'Status':<10} {'Opened':<20} "
               f"{'Txns':<6} {'Sales':<14} {'Variance'}")
    click.echo("="*120)

    for s in sessions:
        variance_str = "-"
        if s.cash_variance_cents is not None:
            variance_str = f"{s.cash_variance_cents / 100:+.2f}"

        click.echo(f"{s.id:<5} {s.session_number:<24} {s.cashier_id:<8} {s.status:<10} "
                   f"{str(s.opened_at)[:19]:<20} {s.total_transactions:<6} "
                   f"{s.total_sales_cents / 100:<14.2f} {variance_str}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(reservations_group)
    app.cli.add_command(sessions_group)
