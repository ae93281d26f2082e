"""Reference data and demo catalog used by ``flask init-db`` / ``flask seed-demo``."""
import logging
from storefront.extensions import db
from storefront.models.brand import Brand
from storefront.models.category import Category
from storefront.models.filters import Color, Gender, Size
from storefront.models.image import ProductImage
from storefront.models.product import Product
from storefront.models.review import Review
from storefront.models.variant import ProductVariant
from storefront.services.slug_service import slugify

logger = logging.getLogger(__name__)

GENDERS = [("Men", "men"), ("Women", "women"), ("Unisex", "unisex"), ("Kids", "kids")]

COLORS = [
    ("Black", "#000000"),
    ("White", "#FFFFFF"),
    ("Grey", "#808080"),
    ("Navy", "#1F2A44"),
    ("Red", "#C0392B"),
    ("Green", "#27AE60"),
    ("Brown", "#7B4A2D"),
    ("Beige", "#D9C7A7"),
]

SIZES = ["6", "6.5", "7", "7.5", "8", "8.5", "9", "9.5", "10", "10.5", "11", "12"]

DEMO_CATEGORIES = {
    "Sneakers": ["Running", "Lifestyle"],
    "Boots": ["Chelsea Boots", "Hiking Boots"],
    "Sports and Outdoor Shoes": [],
    "Sandals": [],
}

DEMO_PRODUCTS = [
    # name, brand, category, gender, price, sale price, colors, sizes
    ("Fresh Foam 1080", "New Balance", "Running", "men", 164.99, 139.99, ["Black", "Grey"], ["9", "10", "11"]),
    ("574 Core", "New Balance", "Lifestyle", "unisex", 89.99, None, ["Grey", "Navy"], ["8", "9", "10"]),
    ("Air Zoom Pegasus", "Nike", "Running", "women", 129.99, None, ["White", "Red"], ["6", "7", "8"]),
    ("Blazer Mid", "Nike", "Lifestyle", "men", 104.99, 84.99, ["White"], ["9", "10", "11", "12"]),
    ("Classic Chelsea", "Blundstone", "Chelsea Boots", "unisex", 229.99, None, ["Brown", "Black"], ["8", "9", "10"]),
    ("Trail Ridge Mid", "Merrell", "Hiking Boots", "women", 149.99, 119.99, ["Brown", "Green"], ["6.5", "7.5", "8.5"]),
    ("Gel-Venture 9", "ASICS", "Sports and Outdoor Shoes", "men", 74.99, None, ["Black", "Navy"], ["9", "10", "11"]),
    ("Original Flip", "Havaianas", "Sandals", "kids", 24.99, None, ["Red", "Navy"], ["6", "7"]),
]

PLACEHOLDER_COLORS = ["c0392b", "2c3e50", "e91e63", "27ae60", "8e44ad", "f39c12", "7f8c8d", "16a085"]


def seed_reference_data():
    """Insert missing genders, colors and sizes. Safe to run repeatedly.

    Returns the number of rows added.
    """
    added = 0
    for label, slug in GENDERS:
        if not Gender.query.filter_by(slug=slug).first():
            db.session.add(Gender(label=label, slug=slug))
            added += 1
    for name, hex_code in COLORS:
        if not Color.query.filter_by(slug=slugify(name)).first():
            db.session.add(Color(name=name, slug=slugify(name), hex_code=hex_code))
            added += 1
    for order, name in enumerate(SIZES):
        slug = "us-" + slugify(name)
        if not Size.query.filter_by(slug=slug).first():
            db.session.add(Size(name=f"US {name}", slug=slug, sort_order=order))
            added += 1
    db.session.commit()
    logger.info("Reference data: %d rows added", added)
    return added


def _get_or_create(model, slug, **fields):
    row = model.query.filter_by(slug=slug).first()
    if not row:
        row = model(slug=slug, **fields)
        db.session.add(row)
        db.session.flush()
    return row


def seed_demo_catalog():
    """Create the demo brands, categories and products.

    Skips when any product exists. Returns the number of products created.
    """
    if Product.query.first():
        return 0
    seed_reference_data()

    categories = {}
    for parent_name, children in DEMO_CATEGORIES.items():
        parent = _get_or_create(Category, slugify(parent_name), name=parent_name)
        categories[parent_name] = parent
        for child_name in children:
            categories[child_name] = _get_or_create(
                Category, slugify(child_name), name=child_name, parent_id=parent.id
            )

    for i, (name, brand_name, category_name, gender_slug, price, sale, colors, sizes) in enumerate(
        DEMO_PRODUCTS
    ):
        brand = _get_or_create(Brand, slugify(brand_name), name=brand_name)
        category = categories[category_name]
        if category not in brand.categories:
            brand.categories.append(category)

        product = Product(
            name=name,
            slug=slugify(f"{brand_name} {name}"),
            description=f"{brand_name} {name}, demo catalog item.",
            brand=brand,
            category=category,
            gender=Gender.query.filter_by(slug=gender_slug).one(),
            is_published=True,
        )
        db.session.add(product)

        for color_name in colors:
            color = Color.query.filter_by(slug=slugify(color_name)).one()
            for size_name in sizes:
                size = Size.query.filter_by(slug="us-" + slugify(size_name)).one()
                ProductVariant(
                    product=product,
                    sku=f"{slugify(brand_name)}-{slugify(name)}-{color.slug}-{size.slug}".upper(),
                    price_cents=round(price * 100),
                    sale_price_cents=round(sale * 100) if sale else None,
                    color=color,
                    size=size,
                    in_stock=10,
                )

        tint = PLACEHOLDER_COLORS[i % len(PLACEHOLDER_COLORS)]
        db.session.add(
            ProductImage(
                product=product,
                url=f"https://placehold.co/800x800/{tint}/fff?text={slugify(name)}",
                sort_order=0,
                is_primary=True,
            )
        )
        for rating, comment in ((5, "Great fit and very comfortable."), (4, "Good value.")):
            db.session.add(
                Review(product=product, reviewer_name="Demo Shopper", rating=rating, comment=comment)
            )

        db.session.flush()
        product.default_variant_id = product.variants[0].id

    db.session.commit()
    logger.info("Seeded %d demo products", len(DEMO_PRODUCTS))
    return len(DEMO_PRODUCTS)
