# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/cashdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default admin user (root/root).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --username maria --full-name "Maria Lopez" --password "secret" --role cashier
#   Create a user (prompts if options are omitted).
#
# Register inspection:
# - python -m flask registers sessions --status open --limit 20
#   List recent cash register sessions with optional filters.
#
# Catalog inspection:
# - python -m flask products low-stock
#   List active products at or below their minimum stock.

import click
from flask.cli import with_appcontext

from .errors import PosError
from .extensions import db
from .models import CashRegisterSession, SessionStatus, User, UserRole
from .money import format_decimal
from .services.auth_service import create_user
from .services.products_service import low_stock_products

DEFAULT_ADMIN_USERNAME = "root"
DEFAULT_ADMIN_PASSWORD = "root"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the cashdesk database.

    Creates:
    - All tables (no-op for tables that already exist)
    - Default administrator: root / root

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing cashdesk...")

    db.create_all()
    click.echo("PASS Tables ready")

    existing = db.session.query(User).filter_by(username=DEFAULT_ADMIN_USERNAME).first()
    if existing:
        click.echo(f"PASS Using existing admin: {existing.username} (ID: {existing.id})")
        return

    user = create_user(
        DEFAULT_ADMIN_USERNAME,
        DEFAULT_ADMIN_PASSWORD,
        "Administrator",
        UserRole.ADMIN,
    )
    click.echo(f"PASS Created default admin: {user.username} (ID: {user.id})")
    click.echo("WARN Default password in use; change it with the users API")


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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Full name':<30} {'Role':<10} {'Active'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.full_name:<30} {user.role.value:<10} {active_str}")

    click.echo("="*80 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['admin', 'cashier']), default='cashier', show_default=True, help='Role')
@with_appcontext
def create_user_cli(username, full_name, password, role):
    """Create a new user."""
    try:
        user = create_user(username, password, full_name, role)
    except PosError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS Created user {user.username} (ID: {user.id}, role: {user.role.value})")


@click.group('registers')
def registers_group():
    """Cash register session inspection commands."""


@registers_group.command('sessions')
@click.option('--user-id', type=int, help='Filter by user ID')
@click.option('--status', type=click.Choice(['open', 'closed']), help='Filter by status')
@click.option('--limit', type=int, default=20, help='Max sessions to show')
@with_appcontext
def list_sessions_cli(user_id, status, limit):
    """
    List cash register sessions.

    Example:
        flask registers sessions
        flask registers sessions --user-id 2
        flask registers sessions --status open
    """
    query = db.session.query(CashRegisterSession)

    if user_id:
        query = query.filter_by(user_id=user_id)

    if status:
        query = query.filter_by(status=SessionStatus(status))

    sessions = query.order_by(CashRegisterSession.opened_at.desc()).limit(limit).all()

    if not sessions:
        click.echo("No sessions found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'User':<20} {'Status':<8} {'Opened':<22} {'Opening':>12} {'Closing':>12}")
    click.echo("="*100)

    for session in sessions:
        username = session.user.username if session.user else "Unknown"
        opened = session.opened_at.strftime("%Y-%m-%d %H:%M:%S")
        closing = format_decimal(session.closing_amount) or "-"
        click.echo(
            f"{session.id:<5} {username:<20} {session.status.value:<8} {opened:<22} "
            f"{format_decimal(session.opening_amount):>12} {closing:>12}"
        )

    click.echo("="*100 + "\n")


@click.group('products')
def products_group():
    """Catalog inspection commands."""


@products_group.command('low-stock')
@with_appcontext
def low_stock_cli():
    """List active products at or below their minimum stock."""
    products = low_stock_products()

    if not products:
        click.echo("No products below minimum stock.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<40} {'Stock':>12} {'Minimum':>12}")
    click.echo("="*80)

    for product in products:
        click.echo(
            f"{product.id:<5} {product.name[:40]:<40} "
            f"{format_decimal(product.stock):>12} {format_decimal(product.min_stock):>12}"
        )

    click.echo("="*80 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(registers_group)
    app.cli.add_command(products_group)
