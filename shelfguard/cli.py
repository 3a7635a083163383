# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# shelfguard/cli.py
# Commands Legend (run from the repository root):
# - flask --app shelfguard <group> <command> [options]
#
# System bootstrap/repair:
# - flask --app shelfguard system init-db
#   Create any missing tables (use `flask db upgrade` for managed schemas).
# - flask --app shelfguard system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - flask --app shelfguard users list [--shop-id 1]
#   List users with their shop and role.
# - flask --app shelfguard users create-manager --shop-id 1 --email m@shop.local --name "Mia" --password secret1
#   Add a manager to an existing shop (signup only creates owners).
#
# Expiry notifications:
# - flask --app shelfguard sweep run [--date 2024-05-01]
#   Run the expiry sweep once, outside the scheduler.
#
# Maintenance:
# - flask --app shelfguard maintenance cleanup-refresh-tokens
#   Delete refresh tokens past their expiry.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Shop, User
from .services import token_service
from .services.auth_service import create_manager
from .services.expiry_sweep import run_expiry_sweep
from .time_utils import parse_iso_date
from .validation import ConflictError, NotFoundError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@click.option('--shop-id', type=int, help='Filter by shop ID')
@with_appcontext
def list_users(shop_id):
    """List all users with their shop and role."""
    query = db.session.query(User).order_by(User.id.asc())
    if shop_id:
        query = query.filter_by(shop_id=shop_id)

    users = query.all()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Shop':<6} {'Email':<35} {'Role':<10} {'Name'}")
    click.echo("="*80)
    for user in users:
        click.echo(f"{user.id:<5} {user.shop_id or '-':<6} {user.email:<35} {user.role:<10} {user.name}")
    click.echo("="*80 + "\n")


@users_group.command('create-manager')
@click.option('--shop-id', type=int, required=True, help='Shop the manager joins')
@click.option('--email', required=True)
@click.option('--name', required=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_manager_cli(shop_id, email, name, password):
    """Add a manager account to an existing shop."""
    try:
        user = create_manager(shop_id=shop_id, email=email, name=name, password=password)
    except (ValidationError, ConflictError, NotFoundError) as e:
        raise click.ClickException(str(e))

    shop = db.session.get(Shop, shop_id)
    click.echo(f"PASS Created manager {user.email} (ID: {user.id}) in shop '{shop.name}'")


@click.group('sweep')
def sweep_group():
    """Expiry notification commands."""


@sweep_group.command('run')
@click.option('--date', 'run_date', help='Sweep as if today were this ISO date')
@with_appcontext
def run_sweep_cli(run_date):
    """Run the expiry notification sweep once."""
    try:
        today = parse_iso_date(run_date) if run_date else None
    except ValueError:
        raise click.BadParameter("must be an ISO date (YYYY-MM-DD)", param_hint="--date")

    result = run_expiry_sweep(current_app.extensions["push_notifier"], today=today)
    status = "PASS" if result.completed else "FAIL"
    click.echo(
        f"{status} Sweep {result.run_date.isoformat()}: shops={result.shops_scanned} "
        f"created={result.logs_created} duplicates={result.duplicates_skipped} "
        f"pushes_sent={result.pushes_sent} pushes_failed={result.pushes_failed}"
    )
    if not result.completed:
        raise SystemExit(1)


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-refresh-tokens')
@with_appcontext
def cleanup_refresh_tokens_cli():
    """Delete refresh tokens past their expiry."""
    deleted = token_service.cleanup_expired_refresh_tokens()
    click.echo(f"Deleted {deleted} expired refresh tokens.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(sweep_group)
    app.cli.add_command(maintenance_group)
