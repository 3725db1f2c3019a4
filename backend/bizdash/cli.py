# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/bizdash/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to bizdash (PowerShell: $env:FLASK_APP="bizdash").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create all tables if missing (use `flask db upgrade` once migrations are set up).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users.
# - python -m flask users create --name "Ada" --email ada@example.com --password "secret123"
#   Create a user (prompts if options are omitted).
#
# Maintenance:
# - python -m flask products recompute-status [--owner-id 1]
#   Re-derive stored product status from stock (e.g. after LOW_STOCK_THRESHOLD changes).

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import auth_service, records_service
from .validation import DuplicateError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables created (existing tables left untouched)")


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
    db.create_all()
    click.echo("PASS Schema recreated")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    for user in users:
        click.echo(f"{user.id:>5}  {user.email:<40} {user.name}")


@users_group.command('create')
@click.option('--name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_user(name, email, password):
    """Create a user account."""
    try:
        user = auth_service.register(name, email, password, session=db.session)
    except (ValidationError, DuplicateError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user {user.email} (ID: {user.id})")


@click.group('products')
def products_group():
    """Product maintenance commands."""


@products_group.command('recompute-status')
@click.option('--owner-id', type=int, default=None, help='Limit to one owner')
@with_appcontext
def recompute_status(owner_id):
    """Re-derive stored status from stock using the configured threshold."""
    repo = records_service.products(
        db.session,
        low_stock_threshold=current_app.config["LOW_STOCK_THRESHOLD"],
    )
    changed = repo.recompute_status(owner_id)
    click.echo(f"PASS {changed} product(s) updated")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(products_group)
