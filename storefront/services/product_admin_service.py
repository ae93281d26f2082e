"""Back-office product editing: products, their variants and images."""
import logging
from sqlalchemy import or_
from storefront import extensions
from storefront.auth import require_editor
from storefront.extensions import db
from storefront.models.brand import Brand
from storefront.models.category import Category
from storefront.models.filters import Color, Gender, Size
from storefront.models.image import ProductImage
from storefront.models.order import OrderItem
from storefront.models.price_history import PriceHistory
from storefront.models.product import Product
from storefront.models.review import Review
from storefront.models.variant import ProductVariant
from storefront.models.video import ProductVideo
from storefront.schemas import (
    ImageCreate,
    ProductCreate,
    ProductUpdate,
    VariantCreate,
    VariantUpdate,
    to_cents,
)
from storefront.services import cache_service
from storefront.services.errors import ActionError
from storefront.services.slug_service import slug_exists, unique_slug
from storefront.workers.price_snapshot import snapshot_product_price

logger = logging.getLogger(__name__)


def _revalidate(product_id=None):
    cache_service.revalidate_path("/admin/products")
    if product_id:
        cache_service.revalidate_path(f"/admin/products/{product_id}")
    cache_service.revalidate_product_pages([product_id] if product_id else ())


def _enqueue_price_snapshot(product_id):
    extensions.task_queue.enqueue(snapshot_product_price, product_id)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def get_admin_products(
    search="", brand_id=None, category_id=None, gender_id=None,
    published=None, page=1, limit=20,
):
    require_editor()
    query = Product.query
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Product.name.ilike(pattern),
                Product.slug.ilike(pattern),
                Product.variants.any(ProductVariant.sku.ilike(pattern)),
            )
        )
    if brand_id:
        query = query.filter(Product.brand_id == brand_id)
    if category_id:
        query = query.filter(Product.category_id == category_id)
    if gender_id:
        query = query.filter(Product.gender_id == gender_id)
    if published is not None:
        query = query.filter(Product.is_published.is_(published))

    pagination = query.order_by(Product.created_at.desc(), Product.id.desc()).paginate(
        page=page, per_page=limit, error_out=False
    )
    items = []
    for p in pagination.items:
        image = p.primary_image
        prices = [v.price for v in p.variants]
        items.append(
            {
                "id": p.id,
                "name": p.name,
                "slug": p.slug,
                "is_published": p.is_published,
                "brand_name": p.brand.name if p.brand else None,
                "category_name": p.category.name if p.category else None,
                "gender": p.gender.label if p.gender else None,
                "variant_count": len(p.variants),
                "min_price": min(prices) if prices else None,
                "image_url": image.url if image else None,
                "created_at": p.created_at.isoformat() if p.created_at else None,
            }
        )
    pagination.items = items
    return pagination


def get_product_for_edit(product_id):
    """Everything the product edit screen shows, or None."""
    require_editor()
    product = db.session.get(Product, product_id)
    if not product:
        return None

    return {
        "product": product.to_dict(),
        "variants": [v.to_dict() for v in product.variants],
        "images": [img.to_dict() for img in product.images],
        "videos": [
            v.to_dict()
            for v in product.videos.order_by(ProductVideo.sort_order, ProductVideo.id)
        ],
        "price_history": [
            {"id": h.id, **h.to_point()}
            for h in product.price_history.order_by(PriceHistory.recorded_at.desc())
        ],
        "reviews": [
            {"id": r.id, "author": r.author, "rating": r.rating, "comment": r.comment}
            for r in product.reviews.order_by(Review.created_at.desc())
        ],
    }


def get_product_form_data():
    """Choices for the product form's select boxes."""
    require_editor()
    return {
        "brands": [b.to_dict() for b in Brand.query.order_by(Brand.name).all()],
        "categories": [c.to_dict() for c in Category.query.order_by(Category.name).all()],
        "genders": [g.to_dict() for g in Gender.query.order_by(Gender.label).all()],
        "colors": [c.to_dict() for c in Color.query.order_by(Color.name).all()],
        "sizes": [s.to_dict() for s in Size.query.order_by(Size.sort_order, Size.name).all()],
    }


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def _check_references(fields):
    for key, model in (("brand_id", Brand), ("category_id", Category), ("gender_id", Gender)):
        if fields.get(key) is not None and not db.session.get(model, fields[key]):
            raise ActionError(f"{model.__name__} not found")


def _check_variant_unique(product_id, sku, color_id, size_id, exclude_id=None):
    query = ProductVariant.query.filter(ProductVariant.sku == sku)
    if exclude_id:
        query = query.filter(ProductVariant.id != exclude_id)
    if query.first():
        raise ActionError(f"SKU {sku} already exists")

    if color_id is None and size_id is None:
        return
    query = ProductVariant.query.filter_by(
        product_id=product_id, color_id=color_id, size_id=size_id
    )
    if exclude_id:
        query = query.filter(ProductVariant.id != exclude_id)
    if query.first():
        raise ActionError("A variant with this color and size already exists")


def _build_variant(product, data):
    return ProductVariant(
        product=product,
        sku=data.sku,
        price_cents=to_cents(data.price),
        sale_price_cents=to_cents(data.sale_price),
        color_id=data.color_id,
        size_id=data.size_id,
        in_stock=data.in_stock,
        weight=data.weight,
        dimensions=data.dimensions,
    )


def create_product(payload):
    """Create a product with its first variant and optional first image."""
    require_editor()
    data = ProductCreate.model_validate(payload)
    fields = data.model_dump(exclude={"variant", "image_url", "slug"})
    _check_references(fields)
    _check_variant_unique(None, data.variant.sku, data.variant.color_id, data.variant.size_id)

    product = Product(**fields)
    product.slug = unique_slug(Product, data.name, data.slug)
    db.session.add(product)
    variant = _build_variant(product, data.variant)
    if data.image_url:
        db.session.add(
            ProductImage(product=product, url=data.image_url, sort_order=0, is_primary=True)
        )
    db.session.flush()
    product.default_variant_id = variant.id
    db.session.commit()

    logger.info("Created product %s (%s)", product.id, product.slug)
    _enqueue_price_snapshot(product.id)
    _revalidate(product.id)
    return product


def update_product(product_id, payload):
    require_editor()
    data = ProductUpdate.model_validate(payload)
    product = db.session.get(Product, product_id)
    if not product:
        return None

    fields = data.model_dump(exclude_unset=True)
    _check_references(fields)

    slug = fields.pop("slug", None)
    if slug and slug != product.slug:
        if slug_exists(Product, slug, exclude_id=product.id):
            raise ActionError("Slug already exists")
        product.slug = slug
    for key in ("name", "is_published"):
        if fields.get(key) is None:
            fields.pop(key, None)
    if fields.get("default_variant_id") is not None:
        if fields["default_variant_id"] not in {v.id for v in product.variants}:
            raise ActionError("Default variant must belong to this product")

    for field, value in fields.items():
        setattr(product, field, value)
    db.session.commit()

    logger.info("Updated product %s", product.id)
    _revalidate(product.id)
    return product


def _variant_ids_in_orders(variant_ids):
    if not variant_ids:
        return False
    return (
        db.session.query(OrderItem.id)
        .filter(OrderItem.variant_id.in_(variant_ids))
        .first()
        is not None
    )


def delete_product(product_id):
    """Delete a product with its variants, images, videos, reviews and history.

    Products that were ordered cannot be deleted; unpublish them instead.
    """
    require_editor()
    product = db.session.get(Product, product_id)
    if not product:
        return False
    if _variant_ids_in_orders([v.id for v in product.variants]):
        raise ActionError("Product has been ordered; unpublish it instead")

    # images reference variants, so they go first
    for image in list(product.images):
        db.session.delete(image)
    db.session.flush()
    db.session.expire(product, ["images"])
    db.session.delete(product)
    db.session.commit()
    logger.info("Deleted product %s", product_id)
    _revalidate(product_id)
    return True


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------

def add_variant(product_id, payload):
    require_editor()
    data = VariantCreate.model_validate(payload)
    product = db.session.get(Product, product_id)
    if not product:
        return None
    _check_variant_unique(product.id, data.sku, data.color_id, data.size_id)

    variant = _build_variant(product, data)
    db.session.flush()
    if product.default_variant_id is None:
        product.default_variant_id = variant.id
    db.session.commit()

    _enqueue_price_snapshot(product.id)
    _revalidate(product.id)
    return variant


def update_variant(variant_id, payload):
    """Edit a variant; a price change queues a price-history snapshot."""
    require_editor()
    data = VariantUpdate.model_validate(payload)
    variant = db.session.get(ProductVariant, variant_id)
    if not variant:
        return None

    fields = data.model_dump(exclude_unset=True)
    sku = fields.get("sku") or variant.sku
    color_id = fields["color_id"] if "color_id" in fields else variant.color_id
    size_id = fields["size_id"] if "size_id" in fields else variant.size_id
    _check_variant_unique(variant.product_id, sku, color_id, size_id, exclude_id=variant.id)

    old_prices = (variant.price_cents, variant.sale_price_cents)
    if "price" in fields:
        if fields["price"] is None:
            raise ActionError("Price is required")
        variant.price_cents = to_cents(fields.pop("price"))
    if "sale_price" in fields:
        variant.sale_price_cents = to_cents(fields.pop("sale_price"))
    if fields.get("sku") is None:
        fields.pop("sku", None)
    if fields.get("in_stock") is None:
        fields.pop("in_stock", None)
    for field, value in fields.items():
        setattr(variant, field, value)
    db.session.commit()

    if (variant.price_cents, variant.sale_price_cents) != old_prices:
        _enqueue_price_snapshot(variant.product_id)
    _revalidate(variant.product_id)
    return variant


def delete_variant(variant_id):
    require_editor()
    variant = db.session.get(ProductVariant, variant_id)
    if not variant:
        return False
    if _variant_ids_in_orders([variant.id]):
        raise ActionError("Variant has been ordered and cannot be deleted")

    product = variant.product
    ProductImage.query.filter_by(variant_id=variant.id).delete()
    product.variants.remove(variant)
    if product.default_variant_id == variant_id:
        product.default_variant_id = product.variants[0].id if product.variants else None
    db.session.commit()

    _enqueue_price_snapshot(product.id)
    _revalidate(product.id)
    return True


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

def add_image(product_id, payload):
    require_editor()
    data = ImageCreate.model_validate(payload)
    product = db.session.get(Product, product_id)
    if not product:
        return None
    if data.variant_id is not None and data.variant_id not in {v.id for v in product.variants}:
        raise ActionError("Variant must belong to this product")

    if data.is_primary:
        for image in product.images:
            image.is_primary = False
    image = ProductImage(product=product, **data.model_dump())
    db.session.add(image)
    db.session.commit()
    _revalidate(product.id)
    return image


def delete_image(image_id):
    require_editor()
    image = db.session.get(ProductImage, image_id)
    if not image:
        return False
    product_id = image.product_id
    db.session.delete(image)
    db.session.commit()
    _revalidate(product_id)
    return True


def set_primary_image(image_id):
    """Make one image primary; every other image of the product loses the flag."""
    require_editor()
    image = db.session.get(ProductImage, image_id)
    if not image:
        return None
    ProductImage.query.filter(
        ProductImage.product_id == image.product_id, ProductImage.id != image.id
    ).update({"is_primary": False})
    image.is_primary = True
    db.session.commit()
    _revalidate(image.product_id)
    return image
