# Overview: Flask CLI command groups for bootstrap and user management.

# backend/duka/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init --org "Duka Ltd" --admin-email admin@duka.local --admin-password "Password123!"
#   Idempotent bootstrap: creates tables, the organization, a first shop and an admin.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list [--org-id 1]
# - python -m flask users create-admin --org-id 1 --name "Jane" --email jane@duka.local --password "Password123!"
# - python -m flask users create-worker --org-id 1 --shop-id 1 --name "Ali" --email ali@duka.local --password "secret1"
# - python -m flask users create-developer --name "Dev" --email dev@duka.local --password "Password123!"

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Organization, Shop, User
from .services.auth_service import create_admin, create_developer, create_worker, PasswordValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--org', 'org_name', default='Default Organization', help='Organization name')
@click.option('--org-code', default='DEFAULT', help='Organization code')
@click.option('--shop', 'shop_name', default='Main Shop', help='First shop name')
@click.option('--shop-location', default='Head office', help='First shop location')
@click.option('--admin-name', default='Admin', help='Admin display name')
@click.option('--admin-email', default='admin@duka.local', help='Admin email')
@click.option('--admin-password', default='Password123!', help='Admin password')
@with_appcontext
def init_system(org_name, org_code, shop_name, shop_location, admin_name, admin_email, admin_password):
    """
    Initialize the database, the organization, its first shop and an admin.

    Safe to run more than once: existing rows are reused.
    """
    click.echo("START Initializing Duka...")
    db.create_all()

    org = db.session.query(Organization).filter_by(code=org_code).first()
    if not org:
        org = Organization(name=org_name, code=org_code, is_active=True)
        db.session.add(org)
        db.session.commit()
        click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, Code: {org.code})")
    else:
        click.echo(f"PASS Using existing organization: {org.name} (ID: {org.id})")

    shop = db.session.query(Shop).filter_by(org_id=org.id, name=shop_name).first()
    if not shop:
        shop = Shop(org_id=org.id, name=shop_name, location=shop_location)
        db.session.add(shop)
        db.session.commit()
        click.echo(f"PASS Created shop: {shop.name} (ID: {shop.id})")
    else:
        click.echo(f"PASS Using existing shop: {shop.name} (ID: {shop.id})")

    existing = db.session.query(User).filter_by(org_id=org.id, email=admin_email.strip().lower()).first()
    if existing:
        click.echo(f"WARN  Admin '{admin_email}' already exists, skipping...")
    else:
        try:
            admin = create_admin(name=admin_name, email=admin_email, password=admin_password, org_id=org.id)
            click.echo(f"PASS Created admin: {admin.email}")
        except (PasswordValidationError, ValueError) as e:
            raise click.ClickException(f"Failed to create admin: {e}")

    click.echo("DONE Duka initialized")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """Drop and recreate all tables (DEV/TEST only)."""
    if not yes:
        raise click.ClickException("Refusing to reset without --yes")
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@click.option('--org-id', type=int, default=None, help='Filter by organization')
@with_appcontext
def list_users(org_id):
    query = db.session.query(User)
    if org_id is not None:
        query = query.filter(User.org_id == org_id)
    users = query.order_by(User.org_id, User.id).all()
    if not users:
        click.echo("No users found")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        shop = f" shop={user.shop_id}" if user.shop_id else ""
        click.echo(f"{user.id:>4}  org={user.org_id}  {user.role:<9} {user.email:<32} {status}{shop}")


@users_group.command('create-admin')
@click.option('--org-id', type=int, required=True)
@click.option('--name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--phone', default=None)
@with_appcontext
def create_admin_command(org_id, name, email, password, phone):
    try:
        user = create_admin(name=name, email=email, password=password, org_id=org_id, phone=phone)
    except (PasswordValidationError, ValueError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created admin {user.email} (ID: {user.id})")


@users_group.command('create-developer')
@click.option('--name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_developer_command(name, email, password):
    """Create a cross-org developer account (no organization)."""
    try:
        user = create_developer(name=name, email=email, password=password)
    except (PasswordValidationError, ValueError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created developer {user.email} (ID: {user.id})")


@users_group.command('create-worker')
@click.option('--org-id', type=int, required=True)
@click.option('--shop-id', type=int, required=True)
@click.option('--name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--phone', default=None)
@with_appcontext
def create_worker_command(org_id, shop_id, name, email, password, phone):
    try:
        user = create_worker(
            name=name, email=email, password=password,
            org_id=org_id, shop_id=shop_id, phone=phone,
        )
    except (PasswordValidationError, ValueError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created worker {user.email} (ID: {user.id}, shop {user.shop_id})")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
