# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/vetclinic/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Bootstrap:
# - python -m flask clinic init [--name "Clinic Name"] [--tax-rate-bps 1200]
#   Idempotent: creates tables, a default company and its front-desk point of sale.
#
# Company management (MULTI-TENANT):
# - python -m flask companies list
# - python -m flask companies create --name "North Clinic" --tax-rate-bps 1500
#
# Inspection:
# - python -m flask inventory low-stock --company-id 1
#   Products at or below their low-stock threshold.
# - python -m flask shifts list --company-id 1 --status OPEN
#
# Maintenance:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Company, PointOfSale
from .numbers import quantity_to_json
from .services import cashier_service, product_service


@click.group('clinic')
def clinic_group():
    """Clinic bootstrap commands."""


@clinic_group.command('init')
@click.option('--name', default='Default Clinic', help='Company name')
@click.option('--tax-rate-bps', type=int, default=0, show_default=True, help='Tax rate in basis points')
@with_appcontext
def init_clinic(name, tax_rate_bps):
    """Create the schema, a default company and its front-desk point of sale."""
    click.echo("START Initializing clinic...")
    db.create_all()

    company = db.session.query(Company).first()
    if not company:
        company = Company(name=name, tax_rate_bps=tax_rate_bps, is_active=True)
        db.session.add(company)
        db.session.commit()
        click.echo(f"PASS Created company: {company.name} (ID: {company.id})")
    else:
        click.echo(f"PASS Using existing company: {company.name} (ID: {company.id})")

    pos = db.session.query(PointOfSale).filter_by(company_id=company.id).first()
    if not pos:
        pos = cashier_service.create_point_of_sale(company.id, "Front Desk")
        click.echo(f"PASS Created point of sale: {pos.name} (ID: {pos.id})")
    else:
        click.echo(f"PASS Using existing point of sale: {pos.name} (ID: {pos.id})")

    click.echo("DONE Clinic ready.")


@click.group('companies')
def companies_group():
    """Company (tenant) management commands."""


@companies_group.command('list')
@with_appcontext
def list_companies():
    """List all companies."""
    companies = db.session.query(Company).order_by(Company.id).all()

    if not companies:
        click.echo("No companies found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<40} {'Tax bps':<10} {'Active'}")
    click.echo("="*70)
    for company in companies:
        active_str = "Yes" if company.is_active else "No"
        click.echo(f"{company.id:<5} {company.name:<40} {company.tax_rate_bps:<10} {active_str}")
    click.echo("="*70 + "\n")


@companies_group.command('create')
@click.option('--name', required=True, help='Company name')
@click.option('--tax-rate-bps', type=int, default=0, show_default=True)
@with_appcontext
def create_company_cli(name, tax_rate_bps):
    """Create a new company (tenant)."""
    if tax_rate_bps < 0:
        click.echo("FAIL tax rate must be >= 0")
        return
    company = Company(name=name, tax_rate_bps=tax_rate_bps, is_active=True)
    db.session.add(company)
    db.session.commit()
    click.echo(f"PASS Created company: {company.name} (ID: {company.id})")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('low-stock')
@click.option('--company-id', type=int, required=True)
@with_appcontext
def low_stock_cli(company_id):
    """List products at or below their low-stock threshold."""
    products = product_service.list_low_stock(company_id)
    if not products:
        click.echo("No products below threshold.")
        return

    click.echo(f"{'ID':<6} {'Name':<40} {'On hand':<10} {'Threshold'}")
    for product in products:
        click.echo(
            f"{product.id:<6} {product.name:<40} "
            f"{quantity_to_json(product.on_hand)!s:<10} {quantity_to_json(product.low_stock_threshold)}"
        )


@click.group('shifts')
def shifts_group():
    """Cashier shift inspection commands."""


@shifts_group.command('list')
@click.option('--company-id', type=int, required=True)
@click.option('--status', type=click.Choice(['OPEN', 'CLOSED'], case_sensitive=False), default=None)
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def list_shifts_cli(company_id, status, limit):
    """List recent cashier shifts."""
    shifts = cashier_service.list_shifts(company_id, status=status)[:limit]
    if not shifts:
        click.echo("No shifts found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<6} {'Point of sale':<25} {'Status':<8} {'Opening':<10} {'Expected':<10} {'Counted':<10} {'Diff'}")
    click.echo("="*100)
    for shift in shifts:
        expected = shift.opening_balance_cents + shift.calculated_cash_total_cents
        counted = shift.closing_balance_cents if shift.closing_balance_cents is not None else "-"
        diff = shift.difference_cents if shift.difference_cents is not None else "-"
        click.echo(
            f"{shift.id:<6} {shift.point_of_sale_name:<25} {shift.status:<8} "
            f"{shift.opening_balance_cents:<10} {expected:<10} {counted!s:<10} {diff}"
        )
    click.echo("="*100 + "\n")


@click.group('system')
def system_group():
    """System maintenance commands."""


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

    click.echo("PASS Database reset complete. Run 'python -m flask clinic init' to initialize.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(clinic_group)
    app.cli.add_command(companies_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(shifts_group)
    app.cli.add_command(system_group)
