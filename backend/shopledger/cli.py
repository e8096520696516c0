# Overview: Flask CLI command groups for setup, inspection, and reporting.

# backend/shopledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --username admin --email admin@shop.local --password "Password123" --role Admin
#   Create a user (prompts if options are omitted).
#
# Inventory:
# - python -m flask inventory low-stock
#   Products at or below their reorder level, lowest stock first.
#
# Finance:
# - python -m flask finance summary
#   Money in/out, inventory value and pending payments.

import click
from flask.cli import with_appcontext

from .errors import ShopLedgerError
from .extensions import db
from .models.auth import ROLES, ROLE_CUSTOMER
from .services.cashflow_service import finance_summary
from .services.inventory_service import list_reorder_candidates
from .services.user_service import create_user, list_users


def _money(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}{cents // 100:,}.{cents % 100:02d}"


@click.group('system')
def system_group():
    """Database maintenance commands."""


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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', default='', help='Email address (optional)')
@click.option('--full-name', default=None, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), default=ROLE_CUSTOMER, show_default=True, help='Role')
@with_appcontext
def create_user_cli(username, email, full_name, password, role):
    """Create a user with a bcrypt-hashed password."""
    try:
        user = create_user(
            username=username,
            email=email or None,
            full_name=full_name,
            password=password,
            role=role,
        )
    except ShopLedgerError as e:
        click.echo(f"FAIL Failed to create user: {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users_cli():
    """List all users with their roles."""
    users = list_users()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<10} {'Active'}")
    click.echo("="*80)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email or '-':<30} {user.role:<10} {active_str}")
    click.echo("="*80 + "\n")


@click.group('inventory')
def inventory_group():
    """Stock inspection commands."""


@inventory_group.command('low-stock')
@with_appcontext
def low_stock_cli():
    """List active products at or below their reorder level."""
    rows = list_reorder_candidates()
    if not rows:
        click.echo("PASS No products need reordering.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'Code':<15} {'Name':<30} {'Qty':>6} {'Reorder':>8}  {'Status'}")
    click.echo("="*80)
    for row in rows:
        click.echo(
            f"{row['item_code']:<15} {row['name'][:30]:<30} "
            f"{row['quantity_in_stock']:>6} {row['reorder_level']:>8}  {row['stock_status']}"
        )
    click.echo("="*80)
    click.echo(f"{len(rows)} product(s) need reordering\n")


@click.group('finance')
def finance_group():
    """Cash-flow reporting commands."""


@finance_group.command('summary')
@with_appcontext
def finance_summary_cli():
    """Print the all-time finance overview."""
    summary = finance_summary()

    click.echo("\n" + "="*50)
    click.echo("FINANCE SUMMARY")
    click.echo("="*50)
    click.echo(f"{'Money in:':<28} {_money(summary['total_money_in_cents']):>20}")
    click.echo(f"{'Money out:':<28} {_money(summary['total_money_out_cents']):>20}")
    click.echo(f"{'Net cash flow:':<28} {_money(summary['net_cash_flow_cents']):>20}")
    click.echo("-"*50)
    click.echo(f"{'Sales income:':<28} {_money(summary['sales_income_cents']):>20}")
    click.echo(f"{'Logistics expense:':<28} {_money(summary['logistics_expense_cents']):>20}")
    click.echo(f"{'Purchase expense:':<28} {_money(summary['purchase_expense_cents']):>20}")
    click.echo("-"*50)
    click.echo(f"{'Inventory value:':<28} {_money(summary['total_inventory_value_cents']):>20}")
    click.echo(f"{'Inventory cost:':<28} {_money(summary['total_inventory_cost_cents']):>20}")
    click.echo(
        f"{'Pending payments:':<28} {_money(summary['pending_payments_cents']):>20}"
        f"  ({summary['pending_order_count']} orders)"
    )
    click.echo("="*50 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(finance_group)
