# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/justsell/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: flask --app justsell <group> <command> [options]
#
# System bootstrap:
# - flask --app justsell system init
#   Idempotent bootstrap: creates tables, default store, admin/manager/cashier users.
# - flask --app justsell system seed-products
#   Insert a small sample catalog (skips SKUs that already exist).
# - flask --app justsell system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - flask --app justsell users list
# - flask --app justsell users create --username jdoe --role CASHIER --store-id 1
#
# Transactions:
# - flask --app justsell transactions show R202403151425300001000042
#   Print the text receipt for a receipt number.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import PosError
from .extensions import db
from .models import Product, Store, User, ROLES
from .services.auth_service import create_user
from .services.receipt_service import build_receipt, format_receipt_text
from .services.transaction_service import get_transaction_by_receipt

DEFAULT_PASSWORD = "Password123!"

SAMPLE_PRODUCTS = (
    # sku, name, category, price_cents, quantity, age_restricted
    ("CIG-MRL-RED", "Marlboro Red King Size", "Cigarettes", 1199, 50, True),
    ("VPE-JUL-MNT", "JUUL Pods Mint 4pk", "Vape", 1999, 40, True),
    ("CGR-SWS-GRP", "Swisher Sweets Grape Cigarillo 2pk", "Cigars", 199, 120, True),
    ("ACC-BIC-LTR", "BIC Classic Lighter", "Accessories", 249, 200, False),
    ("BEV-RDB-250", "Red Bull 8.4oz", "Beverages", 349, 72, False),
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--store-name', default='Main Store', help='Default store name')
@click.option('--store-code', default='MAIN', help='Default store code')
@with_appcontext
def init_system(store_name, store_code):
    """
    Create tables, a default store and admin/manager/cashier users.

    All passwords default to: "Password123!"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing JustSell system...")

    db.create_all()
    click.echo("PASS Database tables ready")

    store = db.session.query(Store).filter_by(code=store_code).first()
    if not store:
        store = Store(code=store_code, name=store_name, is_active=True)
        db.session.add(store)
        db.session.commit()
        click.echo(f"PASS Created store: {store.name} (ID: {store.id}, Code: {store.code})")
    else:
        click.echo(f"PASS Using existing store: {store.name} (ID: {store.id})")

    for role in ROLES:
        username = role.lower()
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"SKIP User {username} already exists")
            continue
        try:
            create_user(username, DEFAULT_PASSWORD, role=role, store_id=store.id)
        except PosError as e:
            click.echo(f"FAIL Could not create {username}: {e.message}")
            continue
        click.echo(f"PASS Created user {username} ({role})")

    click.echo("DONE System initialized")


@system_group.command('seed-products')
@with_appcontext
def seed_products():
    """Insert the sample catalog."""
    created = 0
    for sku, name, category, price_cents, quantity, age_restricted in SAMPLE_PRODUCTS:
        if db.session.query(Product.id).filter_by(sku=sku).first():
            continue
        db.session.add(Product(
            sku=sku,
            name=name,
            category=category,
            price_cents=price_cents,
            quantity=quantity,
            age_restricted=age_restricted,
            is_active=True,
        ))
        created += 1
    db.session.commit()
    click.echo(f"PASS Seeded {created} products")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)
    if not current_app.debug and not current_app.testing:
        click.echo("WARN Resetting a non-debug database")
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLES, case_sensitive=False), prompt=True, help='Role')
@click.option('--store-id', type=int, default=None, help='Home store ID')
@click.option('--first-name', default=None)
@click.option('--last-name', default=None)
@with_appcontext
def create_user_cli(username, password, role, store_id, first_name, last_name):
    """
    Create a new employee.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(
            username,
            password,
            role=role.upper(),
            store_id=store_id,
            first_name=first_name,
            last_name=last_name,
        )
    except PosError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)
    click.echo(f"PASS Created user {user.username} (ID: {user.id}, Role: {user.role})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo("=" * 72)
    click.echo(f"{'ID':<5} {'Username':<20} {'Role':<10} {'Store':<7} {'Active':<8} {'Name'}")
    click.echo("=" * 72)
    for user in users:
        store = user.store_id if user.store_id is not None else "-"
        active = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.role:<10} {store!s:<7} {active:<8} {user.display_name}")


@click.group('transactions')
def transactions_group():
    """Transaction inspection commands."""


@transactions_group.command('show')
@click.argument('receipt_number')
@with_appcontext
def show_transaction(receipt_number):
    """Print the receipt for RECEIPT_NUMBER."""
    try:
        transaction = get_transaction_by_receipt(receipt_number)
    except PosError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)
    receipt = build_receipt(transaction)
    click.echo(format_receipt_text(receipt, width=current_app.config.get("RECEIPT_WIDTH", 40)))


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(transactions_group)
