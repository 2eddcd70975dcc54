# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "stockpos:create_app" (PowerShell: $env:FLASK_APP="stockpos:create_app").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Demo users (admin/sales/viewer), categories and products with initial stock.
#
# Inspection:
# - python -m flask inventory low-stock
#   List active products at or below their minimum stock.
# - python -m flask sales list --limit 20
#   List recent sales newest first.
# - python -m flask sales receipt <sale_id>
#   Print a sale's receipt.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Category, Product, User
from .models.auth import ROLE_ADMIN, ROLE_SALES, ROLE_VIEWER
from .models.inventory import DIRECTION_IN
from .services import movement_service, sales_service, stock_ledger_service
from .services.payment_service import format_cents


DEMO_USERS = [
    ("Super Admin", "admin@store.com", ROLE_ADMIN),
    ("Sales Rep", "sales@store.com", ROLE_SALES),
    ("Guest Viewer", "viewer@store.com", ROLE_VIEWER),
]

DEMO_CATEGORIES = [
    ("Electronics", "Gadgets and devices"),
    ("Furniture", "Office and home furniture"),
    ("Accessories", "Cables, chargers, etc."),
    ("Clothing", "Uniforms and apparel"),
]

# sku, name, description, price_cents, category, initial stock, min stock
DEMO_PRODUCTS = [
    ("PROD-001", "Wireless Headphones", "Noise cancelling headphones", 12000, "Electronics", 15, 5),
    ("PROD-002", "Mechanical Keyboard", "RGB Gaming Keyboard", 8550, "Electronics", 3, 10),
    ("PROD-003", "Office Chair", "Ergonomic chair", 25000, "Furniture", 8, 2),
    ("PROD-004", "USB-C Cable", "2m fast charging cable", 1200, "Accessories", 100, 20),
    ("PROD-005", "Monitor 24\"", "IPS 1080p Display", 18000, "Electronics", 12, 5),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """
    Seed demo users, categories and products.

    Initial stock goes through the movement log ("Initial Stock" movements)
    so the ledger and the audit trail agree from the first row.
    """
    db.create_all()

    users = {}
    for name, email, role in DEMO_USERS:
        user = db.session.query(User).filter_by(email=email).first()
        if user:
            click.echo(f"WARN  User '{email}' already exists, skipping...")
        else:
            user = User(name=name, email=email, role=role, is_active=True)
            db.session.add(user)
            click.echo(f"PASS Created user: {name} ({email}) with role '{role}'")
        users[role] = user
    db.session.commit()

    categories = {}
    for name, description in DEMO_CATEGORIES:
        category = db.session.query(Category).filter_by(name=name).first()
        if not category:
            category = Category(name=name, description=description, is_active=True)
            db.session.add(category)
        categories[name] = category
    db.session.commit()

    admin = users[ROLE_ADMIN]
    for sku, name, description, price_cents, category_name, initial_stock, min_stock in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(sku=sku).first():
            click.echo(f"WARN  Product '{sku}' already exists, skipping...")
            continue

        product = Product(
            sku=sku,
            name=name,
            description=description,
            price_cents=price_cents,
            category_id=categories[category_name].id,
            stock=0,
            min_stock=min_stock,
            is_active=True,
        )
        db.session.add(product)
        db.session.commit()

        movement_service.register_movement(
            product_id=product.id,
            direction=DIRECTION_IN,
            quantity=initial_stock,
            actor_id=admin.id,
            reason="Initial Stock",
        )
        click.echo(f"PASS Created product {sku} ({name}) with stock {initial_stock}")

    click.echo("DONE Demo data seeded")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('low-stock')
@with_appcontext
def low_stock_cli():
    products = stock_ledger_service.list_low_stock()
    if not products:
        click.echo("No low-stock products")
        return
    for product in products:
        click.echo(f"{product.sku:<12} {product.name:<30} stock={product.stock} min={product.min_stock}")


@click.group('sales')
def sales_group():
    """Sales inspection commands."""


@sales_group.command('list')
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def list_sales_cli(limit):
    for sale in sales_service.list_sales(limit=limit):
        flag = " CREDIT" if sale.is_credit else ""
        click.echo(
            f"{sale.occurred_at:%Y-%m-%d %H:%M} {sale.id} {sale.document_type:<8} "
            f"{format_cents(sale.total_cents)} {sale.actor_name}{flag}"
        )


@sales_group.command('receipt')
@click.argument('sale_id')
@with_appcontext
def receipt_cli(sale_id):
    try:
        sale = sales_service.get_sale(sale_id)
    except sales_service.SaleNotFound:
        click.echo(f"FAIL Sale {sale_id} not found")
        raise SystemExit(1)
    click.echo(sales_service.render_receipt(sale), nl=False)


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(sales_group)
