# storefront/cli.py
from decimal import Decimal

import click
from flask import current_app
from flask.cli import with_appcontext

from storefront.extensions import db
from storefront.models.auth import Role, User
from storefront.models.catalog import Category, Collection, Product
from storefront.utils.slugs import generate_slug

DEMO_CATEGORIES = [
    ("Dresses", "Beautiful dresses for every occasion."),
    ("Tops", "Stylish tops, blouses, and sweaters."),
    ("Accessories", "Scarves, bags, and more."),
]

# (name, category, price, discount %, stock, images)
DEMO_PRODUCTS = [
    ("Floral Print Midi Dress", "Dresses", "59.90", "20", 45, ["/images/dress-floral-1.jpg", "/images/dress-floral-2.jpg"]),
    ("Little Black Dress", "Dresses", "79.00", "0", 30, ["/images/dress-black-1.jpg"]),
    ("Silk Blouse", "Tops", "45.50", "10", 60, ["/images/top-silk-1.jpg"]),
    ("Cable Knit Sweater", "Tops", "65.00", "0", 25, ["/images/top-knit-1.jpg"]),
    ("Cashmere Scarf", "Accessories", "39.99", "0", 80, ["/images/acc-scarf-1.jpg"]),
    ("Leather Tote Bag", "Accessories", "120.00", "15", 12, ["/images/acc-tote-1.jpg"]),
]


@click.command("user-create")
@click.argument("email")
@click.argument("password")
@click.option("--name", default="Admin")
@click.option("--role", default="ADMIN", type=click.Choice([r.value for r in Role], case_sensitive=False))
@with_appcontext
def user_create(email, password, name, role):
    """Create a user with the given credentials."""
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        click.echo(f"User already exists: {email}")
        return
    u = User(name=name, email=email, role=Role.parse(role).value)
    u.set_password(password)
    db.session.add(u)
    db.session.commit()
    click.echo(f"Created user: {email} ({u.role})")


@click.command("create-tables")
@with_appcontext
def create_tables():
    """db.create_all() for local SQLite setups; use `flask db upgrade` elsewhere."""
    import storefront.models  # noqa: F401
    db.create_all()
    click.echo("tables created")


def seed_catalog() -> dict:
    """Idempotent demo catalog: upserts by slug. Returns counts of new rows."""
    created = {"categories": 0, "products": 0, "collections": 0}

    cats = {}
    for name, desc in DEMO_CATEGORIES:
        slug = generate_slug(name)
        cat = Category.query.filter_by(slug=slug).first()
        if not cat:
            cat = Category(name=name, slug=slug, description=desc)
            db.session.add(cat)
            created["categories"] += 1
        cats[name] = cat
    db.session.flush()

    products = []
    for name, cat_name, price, discount, stock, images in DEMO_PRODUCTS:
        slug = generate_slug(name)
        p = Product.query.filter_by(slug=slug).first()
        if not p:
            p = Product(
                name=name,
                slug=slug,
                description=f"{name} from the demo catalog.",
                price=Decimal(price),
                discount=Decimal(discount),
                stock_quantity=stock,
                images=images,
                category_id=cats[cat_name].id,
                is_active=True,
            )
            db.session.add(p)
            created["products"] += 1
        products.append(p)
    db.session.flush()

    if not Collection.query.filter_by(name="Weekend Essentials").first():
        coll = Collection(
            name="Weekend Essentials",
            description="A dress, a sweater and a scarf.",
            price=Decimal("150.00"),
            status="active",
        )
        coll.products = [products[0], products[3], products[4]]
        db.session.add(coll)
        created["collections"] += 1

    db.session.commit()
    current_app.logger.info("seed-catalog: %s", created)
    return created


@click.command("seed-catalog")
@with_appcontext
def seed_catalog_cmd():
    """Insert demo categories, products and one collection."""
    created = seed_catalog()
    click.echo(
        f"categories +{created['categories']}, products +{created['products']}, "
        f"collections +{created['collections']}"
    )


def register_cli(app):
    app.cli.add_command(user_create)
    app.cli.add_command(create_tables)
    app.cli.add_command(seed_catalog_cmd)
