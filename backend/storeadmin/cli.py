# backend/storeadmin/cli.py
"""
Flask CLI groups for bootstrapping a deployment.

Run from backend/ with FLASK_APP=wsgi.py:

    flask system reset-db --yes          # drop + recreate every table (dev only)
    flask users create --username owner --email owner@store.local
    flask users list
    flask stores create --owner owner --name "Main Store" [--currency AUD]
    flask catalog add-size --store-id 1 --name Small --value S
    flask catalog add-color --store-id 1 --name Black --value "#000000"
    flask catalog add-category --store-id 1 --name Shirts
    flask catalog seed --store-id 1

Stores, sizes, colors and categories have no HTTP management API; they are
seeded here.
"""

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Category, Color, Size, Store, User
from .services.auth_service import create_user, PasswordValidationError
from .services.store_service import create_store


DEFAULT_SIZES = [("Small", "S"), ("Medium", "M"), ("Large", "L")]
DEFAULT_COLORS = [("Black", "#000000"), ("White", "#FFFFFF")]


@click.group('system')
def system_group():
    """Database maintenance."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """Drop every table and recreate the schema. Deletes all data."""
    if not yes:
        click.confirm("Drop and recreate every table? All data will be lost.", abort=True)

    db.drop_all()
    db.create_all()
    click.echo(f"PASS Recreated {len(db.metadata.tables)} tables.")


@click.group('users')
def users_group():
    """Dashboard user commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(username, email, password):
    """Create a dashboard user (password rules: see auth_service.PASSWORD_RULES)."""
    try:
        user = create_user(username=username, email=email, password=password)
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e}")
    except ValueError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.username} ({user.email}) ID: {user.id}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their stores."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return
    for u in users:
        stores = ", ".join(s.name for s in u.stores) or "-"
        status = "active" if u.is_active else "inactive"
        click.echo(f"{u.id:>4}  {u.username:<20} {u.email:<30} {status:<8} stores: {stores}")


@click.group('stores')
def stores_group():
    """Store seeding commands."""


@stores_group.command('create')
@click.option('--owner', 'owner', required=True, help='Owner username')
@click.option('--name', required=True, help='Store name')
@click.option('--currency', default=None, help='ISO-4217 currency (defaults to DEFAULT_CURRENCY)')
@with_appcontext
def create_store_cli(owner, name, currency):
    """Create a store owned by an existing user."""
    user = db.session.query(User).filter_by(username=owner).first()
    if not user:
        raise click.ClickException(f"User '{owner}' not found")

    try:
        store = create_store(
            user_id=user.id,
            name=name,
            currency=currency or current_app.config["DEFAULT_CURRENCY"],
        )
    except ValueError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created store: {store.name} (ID: {store.id}, currency: {store.currency})")


@click.group('catalog')
def catalog_group():
    """Size, color and category seeding commands."""


def _require_store(store_id: int) -> Store:
    store = db.session.query(Store).filter_by(id=store_id).first()
    if not store:
        raise click.ClickException(f"Store ID {store_id} not found")
    return store


@catalog_group.command('add-size')
@click.option('--store-id', type=int, required=True)
@click.option('--name', required=True)
@click.option('--value', required=True)
@with_appcontext
def add_size(store_id, name, value):
    _require_store(store_id)
    size = Size(store_id=store_id, name=name, value=value)
    db.session.add(size)
    db.session.commit()
    click.echo(f"PASS Created size {size.name} (ID: {size.id})")


@catalog_group.command('add-color')
@click.option('--store-id', type=int, required=True)
@click.option('--name', required=True)
@click.option('--value', required=True, help='Hex value, e.g. "#000000"')
@with_appcontext
def add_color(store_id, name, value):
    _require_store(store_id)
    color = Color(store_id=store_id, name=name, value=value)
    db.session.add(color)
    db.session.commit()
    click.echo(f"PASS Created color {color.name} (ID: {color.id})")


@catalog_group.command('add-category')
@click.option('--store-id', type=int, required=True)
@click.option('--name', required=True)
@with_appcontext
def add_category(store_id, name):
    _require_store(store_id)
    category = Category(store_id=store_id, name=name)
    db.session.add(category)
    db.session.commit()
    click.echo(f"PASS Created category {category.name} (ID: {category.id})")


@catalog_group.command('seed')
@click.option('--store-id', type=int, required=True)
@with_appcontext
def seed_catalog(store_id):
    """Add a starter set of sizes, colors and a category (skips existing names)."""
    _require_store(store_id)

    created = 0
    for name, value in DEFAULT_SIZES:
        if not db.session.query(Size).filter_by(store_id=store_id, name=name).first():
            db.session.add(Size(store_id=store_id, name=name, value=value))
            created += 1
    for name, value in DEFAULT_COLORS:
        if not db.session.query(Color).filter_by(store_id=store_id, name=name).first():
            db.session.add(Color(store_id=store_id, name=name, value=value))
            created += 1
    if not db.session.query(Category).filter_by(store_id=store_id).first():
        db.session.add(Category(store_id=store_id, name="General"))
        created += 1

    db.session.commit()
    click.echo(f"PASS Seeded {created} catalog rows for store {store_id}")


def register_commands(app):
    """Attach every command group to app.cli."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stores_group)
    app.cli.add_command(catalog_group)
