# Overview: Flask CLI command groups for bootstrap, accounts, settlement, and maintenance.

# backend/giftbox/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates all tables and the platform settings row.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Accounts:
# - python -m flask users create-admin --email admin@giftbox.local --password "Password123!" --name "Admin"
#   Create an admin account (admins cannot sign up through the API).
# - python -m flask users list [--role vendor]
#   List accounts with role and active status.
#
# Settlement:
# - python -m flask payouts process [--vendor-order-id 12 --vendor-order-id 13]
#   Settle payouts now; without ids, everything past the holding period.
#
# Maintenance:
# - python -m flask sessions cleanup
#   Delete expired or revoked sessions older than 30 days.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import GiftboxError
from .models import Role, User
from .services import auth_service, payout_service, session_service, settings_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create missing tables and the platform settings row.

    Safe to run repeatedly; existing data is left alone.
    """
    click.echo("START Initializing giftbox...")
    db.create_all()
    settings = settings_service.get_settings()
    click.echo(
        f"PASS Platform settings: commission {settings.commission_percent}%, "
        f"tax {settings.tax_percent}%, plugin tax {settings.plugin_tax}%"
    )
    click.echo("DONE giftbox initialized. Create an admin with: flask users create-admin")


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

    click.echo("PASS Database reset complete")


@click.group('users')
def users_group():
    """Account inspection and bootstrap commands."""


@users_group.command('create-admin')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--name', default=None, help='Display name')
@with_appcontext
def create_admin_cli(email, password, name):
    """Create an admin account."""
    try:
        result = auth_service.sign_up(email, password, name, Role.ADMIN.value, allow_admin=True)
    except GiftboxError as e:
        click.echo(f"FAIL {e.message}", err=True)
        raise SystemExit(1)
    click.echo(f"PASS Created admin: {result.user.email} (ID: {result.user.id})")


@users_group.command('list')
@click.option('--role', type=click.Choice([r.value for r in Role]), help='Only this role')
@with_appcontext
def list_users_cli(role):
    """List accounts."""
    query = db.session.query(User).order_by(User.id)
    if role:
        query = query.filter(User.role == role)
    users = query.all()
    if not users:
        click.echo("No users found")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>5}  {user.email:<40} {user.role:<8} {status}")


@click.group('payouts')
def payouts_group():
    """Vendor settlement commands."""


@payouts_group.command('process')
@click.option('--vendor-order-id', 'vendor_order_ids', type=int, multiple=True, help='Settle only these vendor orders')
@with_appcontext
def process_payouts_cli(vendor_order_ids):
    """Settle delivered vendor orders and report the batch result."""
    result = payout_service.process_payouts(list(vendor_order_ids) or None)
    click.echo(f"PASS Processed {result.processed}, skipped {result.skipped}")
    for error in result.errors:
        click.echo(f"WARN {error}")
    if result.errors:
        raise SystemExit(1)


@click.group('sessions')
def sessions_group():
    """Session maintenance commands."""


@sessions_group.command('cleanup')
@with_appcontext
def cleanup_sessions_cli():
    """Delete expired or revoked sessions older than 30 days."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} session(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(payouts_group)
    app.cli.add_command(sessions_group)
