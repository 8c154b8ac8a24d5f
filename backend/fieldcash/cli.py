# Overview: Flask CLI command groups for bootstrap, inspection, and end-of-day maintenance.

# backend/fieldcash/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (use "flask db upgrade" for migrated databases).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Employees:
# - python -m flask employees create --name "Ravi" --email ravi@example.com --role field_staff
# - python -m flask employees list [--role admin]
#
# Shops:
# - python -m flask shops create --actor-id 1 --name "Sharma Store" --address "12 Market Rd" --zone North --opening-balance-cents 500000
# - python -m flask shops list [--zone North] [--all]
#
# Ledger integrity:
# - python -m flask ledger check [--shop-id 3]
#   Compare each shop's balance with opening balance + sum of audit changes. Exits 1 on drift.
#
# End of day:
# - python -m flask reconciliations close-day --date 2026-10-19 --actor-id 1
#   Close every reconciliation of the date (irreversible).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Employee
from .models.employees import ROLES
from . import repositories
from .services import ledger_service, reconciliation_service, shop_service
from .services.concurrency import atomic, run_with_retry
from .services.permission_service import IdentityError, PermissionDeniedError, make_context
from .validation import ConflictError, NotFoundError, ValidationError


def _actor_context(actor_id: int):
    try:
        return make_context(employee_id=actor_id)
    except IdentityError as e:
        raise click.ClickException(f"Actor {actor_id}: {e}")


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
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


@click.group('employees')
def employees_group():
    """Employee inspection and bootstrap."""


@employees_group.command('create')
@click.option('--name', prompt=True, help='Full name')
@click.option('--email', prompt=True, help='Email (unique)')
@click.option('--role', type=click.Choice(ROLES), default='field_staff', show_default=True)
@click.option('--phone', default=None, help='Phone number')
@with_appcontext
def create_employee(name, email, role, phone):
    """Create an employee."""
    email = email.strip().lower()
    if repositories.employees.query(email=email).first():
        raise click.ClickException(f"Employee with email '{email}' already exists")

    with atomic():
        employee = repositories.employees.insert(Employee(
            name=name.strip(),
            email=email,
            phone=phone,
            role=role,
            status="active",
        ))

    click.echo(f"PASS Created employee: {employee.name} (ID: {employee.id}, Role: {employee.role})")


@employees_group.command('list')
@click.option('--role', type=click.Choice(ROLES), default=None, help='Filter by role')
@with_appcontext
def list_employees(role):
    """List employees."""
    query = db.session.query(Employee)
    if role:
        query = query.filter_by(role=role)
    employees = query.order_by(Employee.id.asc()).all()

    if not employees:
        click.echo("No employees found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Name':<24} {'Email':<32} {'Role':<12} {'Active'}")
    click.echo("="*90)
    for e in employees:
        active_str = "Yes" if e.is_active else "No"
        click.echo(f"{e.id:<5} {e.name:<24} {e.email:<32} {e.role:<12} {active_str}")
    click.echo("="*90 + "\n")


@click.group('shops')
def shops_group():
    """Shop inspection and bootstrap."""


@shops_group.command('create')
@click.option('--actor-id', type=int, required=True, help='Admin employee ID performing the action')
@click.option('--name', required=True)
@click.option('--address', required=True)
@click.option('--zone', required=True)
@click.option('--phone', default=None)
@click.option('--opening-balance-cents', type=int, default=0, show_default=True)
@with_appcontext
def create_shop(actor_id, name, address, zone, phone, opening_balance_cents):
    """Create a shop with an opening balance."""
    ctx = _actor_context(actor_id)
    try:
        shop = shop_service.create_shop(
            ctx,
            name=name,
            address=address,
            zone=zone,
            phone=phone,
            opening_balance_cents=opening_balance_cents,
        )
    except (ValidationError, PermissionDeniedError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created shop: {shop.name} (ID: {shop.id}, Balance: {shop.current_balance_cents})")


@shops_group.command('list')
@click.option('--zone', default=None, help='Filter by zone')
@click.option('--all', 'include_deleted', is_flag=True, help='Include deleted shops')
@with_appcontext
def list_shops(zone, include_deleted):
    """List shops with their balances."""
    shops = shop_service.list_shops(zone=zone, include_deleted=include_deleted)

    if not shops:
        click.echo("No shops found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Name':<28} {'Zone':<12} {'Balance':>12} {'Last collection':<16} {'Deleted'}")
    click.echo("="*90)
    for s in shops:
        last = s.last_collection_date.isoformat() if s.last_collection_date else "-"
        deleted = "Yes" if s.is_deleted else "No"
        click.echo(f"{s.id:<5} {s.name:<28} {s.zone:<12} {s.current_balance_cents:>12} {last:<16} {deleted}")
    click.echo("="*90 + "\n")


@click.group('ledger')
def ledger_group():
    """Shop ledger integrity commands."""


@ledger_group.command('check')
@click.option('--shop-id', type=int, default=None, help='Check a single shop')
@with_appcontext
def check_ledger(shop_id):
    """
    Compare current balances against opening balance + audited changes.

    Exits with status 1 when any shop drifts.
    """
    if shop_id is not None:
        shop_ids = [shop_id]
    else:
        shop_ids = [s.id for s in shop_service.list_shops(include_deleted=True)]

    drifted = 0
    for sid in shop_ids:
        try:
            result = ledger_service.ledger_drift(sid)
        except NotFoundError as e:
            raise click.ClickException(f"Shop {sid}: {e}")

        if result.is_consistent:
            click.echo(f"PASS Shop {sid}: balance {result.current_balance_cents}")
        else:
            drifted += 1
            click.echo(
                f"FAIL Shop {sid}: balance {result.current_balance_cents}, "
                f"expected {result.expected_balance_cents} (drift {result.drift_cents})"
            )

    click.echo(f"\nChecked {len(shop_ids)} shop(s), {drifted} with drift.")
    if drifted:
        raise SystemExit(1)


@click.group('reconciliations')
def reconciliations_group():
    """End-of-day reconciliation commands."""


@reconciliations_group.command('close-day')
@click.option('--date', 'business_date', required=True, help='Business date (YYYY-MM-DD, UTC)')
@click.option('--actor-id', type=int, required=True, help='Admin employee ID performing the close')
@with_appcontext
def close_day(business_date, actor_id):
    """Close every reconciliation of a date (irreversible)."""
    ctx = _actor_context(actor_id)
    try:
        closed = run_with_retry(lambda: reconciliation_service.close_day(ctx, business_date))
    except (ValidationError, PermissionDeniedError, ConflictError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Closed {closed} reconciliation(s) for {business_date}.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(employees_group)
    app.cli.add_command(shops_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(reconciliations_group)
