"""Read-side catalog queries for the storefront pages."""
import logging
import re
from datetime import datetime, timedelta, timezone
from flask import current_app
from sqlalchemy import and_, case, func, or_
from storefront.extensions import db
from storefront.models.brand import Brand
from storefront.models.category import Category
from storefront.models.filters import Gender, Color, Size
from storefront.models.image import ProductImage
from storefront.models.price_history import PriceHistory
from storefront.models.product import Product
from storefront.models.review import Review, FeaturedReview
from storefront.models.variant import ProductVariant
from storefront.models.video import ProductVideo
from storefront.schemas import to_cents

logger = logging.getLogger(__name__)

PRIORITY_CATEGORY_SLUGS = ("sneakers", "boots", "sports-and-outdoor-shoes")


def _variant_conditions(size_slugs, color_slugs, price_min, price_max, price_ranges):
    """WHERE terms on ProductVariant for the size/color/price filters."""
    conds = []
    if size_slugs:
        conds.append(
            ProductVariant.size_id.in_(db.select(Size.id).where(Size.slug.in_(size_slugs)))
        )
    if color_slugs:
        conds.append(
            ProductVariant.color_id.in_(
                db.select(Color.id).where(Color.slug.in_(color_slugs))
            )
        )

    ranges = list(price_ranges or [])
    if price_min is not None or price_max is not None:
        ranges.append((price_min, price_max))
    bounds = []
    for low, high in ranges:
        terms = []
        if low is not None:
            terms.append(ProductVariant.price_cents >= to_cents(low))
        if high is not None:
            terms.append(ProductVariant.price_cents <= to_cents(high))
        if terms:
            bounds.append(and_(*terms))
    if bounds:
        conds.append(or_(*bounds))
    return conds


def _price_aggregate(fn, variant_conds):
    return (
        db.select(fn(ProductVariant.price_cents))
        .where(ProductVariant.product_id == Product.id, *variant_conds)
        .correlate(Product)
        .scalar_subquery()
    )


def _representative_image(color_slugs=None, any_variant=False):
    """One image URL per product: primary first, then lowest sort order.

    With ``color_slugs`` the image must belong to a variant in one of those
    colors; otherwise only images not tied to a variant qualify (unless
    ``any_variant``).
    """
    query = db.select(ProductImage.url).where(ProductImage.product_id == Product.id)
    if color_slugs:
        query = query.join(
            ProductVariant, ProductVariant.id == ProductImage.variant_id
        ).where(
            ProductVariant.color_id.in_(
                db.select(Color.id).where(Color.slug.in_(color_slugs))
            )
        )
    elif not any_variant:
        query = query.where(ProductImage.variant_id.is_(None))
    return (
        query.order_by(ProductImage.is_primary.desc(), ProductImage.sort_order.asc())
        .limit(1)
        .correlate(Product)
        .scalar_subquery()
    )


def _review_count():
    return (
        db.select(func.count(Review.id))
        .where(Review.product_id == Product.id)
        .correlate(Product)
        .scalar_subquery()
    )


def _cents_to_amount(value):
    return None if value is None else value / 100


def get_all_products(
    search=None, gender_slugs=(), brand_slugs=(), category_slugs=(),
    size_slugs=(), color_slugs=(), price_min=None, price_max=None,
    price_ranges=(), sort="featured", page=1, limit=24,
):
    """Published products matching the filters, one page at a time.

    Each item carries the min/max price over the variants that match the
    size/color/price filters, and a product only qualifies when at least one
    variant matches. Returns a Flask-SQLAlchemy pagination whose items are
    plain dicts.
    """
    conds = [Product.is_published.is_(True)]

    if search:
        pattern = f"%{search.strip()}%"
        squashed = "%" + re.sub(r"\s+", "", search.strip().lower()) + "%"
        conds.append(
            or_(
                Product.name.ilike(pattern),
                Product.description.ilike(pattern),
                Brand.name.ilike(pattern),
                # "newbalance" should find "New Balance"
                func.lower(func.replace(Product.name, " ", "")).like(squashed),
                func.lower(func.replace(Brand.name, " ", "")).like(squashed),
            )
        )
    if gender_slugs:
        conds.append(
            Product.gender_id.in_(db.select(Gender.id).where(Gender.slug.in_(gender_slugs)))
        )
    if brand_slugs:
        conds.append(
            Product.brand_id.in_(db.select(Brand.id).where(Brand.slug.in_(brand_slugs)))
        )
    if category_slugs:
        conds.append(
            Product.category_id.in_(
                db.select(Category.id).where(Category.slug.in_(category_slugs))
            )
        )

    variant_conds = _variant_conditions(
        size_slugs, color_slugs, price_min, price_max, price_ranges
    )
    if variant_conds:
        conds.append(
            db.select(ProductVariant.id)
            .where(ProductVariant.product_id == Product.id, *variant_conds)
            .correlate(Product)
            .exists()
        )

    min_price = _price_aggregate(func.min, variant_conds)
    max_price = _price_aggregate(func.max, variant_conds)

    if sort == "price_asc":
        primary_order = min_price.asc()
    elif sort == "price_desc":
        primary_order = max_price.desc()
    elif sort == "most_popular":
        primary_order = _review_count().desc()
    else:
        # newest and featured
        primary_order = Product.created_at.desc()

    query = (
        db.session.query(
            Product.id,
            Product.name,
            Product.slug,
            Product.created_at,
            Gender.label.label("gender_label"),
            Brand.name.label("brand_name"),
            Brand.logo_url.label("brand_logo_url"),
            min_price.label("min_price"),
            max_price.label("max_price"),
            _representative_image(color_slugs).label("image_url"),
        )
        .select_from(Product)
        .outerjoin(Gender, Gender.id == Product.gender_id)
        .outerjoin(Brand, Brand.id == Product.brand_id)
        .filter(*conds)
        .order_by(primary_order, Product.created_at.desc(), Product.id.asc())
    )

    pagination = query.paginate(
        page=max(1, page),
        per_page=max(1, limit),
        max_per_page=current_app.config["CATALOG_MAX_LIMIT"],
        error_out=False,
    )
    pagination.items = [
        {
            "id": row.id,
            "name": row.name,
            "slug": row.slug,
            "image_url": (row.image_url or "").strip() or None,
            "min_price": _cents_to_amount(row.min_price),
            "max_price": _cents_to_amount(row.max_price),
            "created_at": row.created_at,
            "subtitle": f"{row.gender_label} Shoes" if row.gender_label else None,
            "brand_name": row.brand_name,
            "brand_logo_url": row.brand_logo_url,
        }
        for row in pagination.items
    ]
    logger.debug(
        "Catalog page %d: %d of %d products",
        pagination.page, len(pagination.items), pagination.total,
    )
    return pagination


def _full_product(product):
    data = product.to_dict()
    data["brand"] = product.brand.to_dict() if product.brand else None
    data["category"] = product.category.to_dict() if product.category else None
    data["gender"] = product.gender.to_dict() if product.gender else None
    return {
        "product": data,
        "variants": [v.to_dict() for v in product.variants],
        "images": [img.to_dict() for img in product.images],
    }


def get_product(product_id):
    """Product with brand/category/gender, variants and images, or None."""
    product = db.session.get(Product, product_id)
    if not product:
        return None
    return _full_product(product)


def get_product_by_slug(slug):
    product = Product.query.filter_by(slug=slug).first()
    if not product:
        return None
    return _full_product(product)


def get_product_rating(product_id):
    """Manual rating when the product has one, else the review average.

    Returns None when there is neither.
    """
    product = db.session.get(Product, product_id)
    if product and product.manual_rating:
        return {
            "average": float(product.manual_rating),
            "count": product.manual_review_count or 0,
        }

    average, count = (
        db.session.query(func.avg(Review.rating), func.count(Review.id))
        .filter(Review.product_id == product_id)
        .one()
    )
    if not count:
        return None
    return {"average": round(float(average), 2), "count": count}


def _review_dict(review):
    return {
        "id": review.id,
        "author": review.author,
        "rating": review.rating,
        "content": review.comment or "",
        "created_at": review.created_at.isoformat() if review.created_at else None,
    }


def get_product_reviews(product_id, limit=10):
    """Newest reviews first; ``limit=None`` returns all of them."""
    query = Review.query.filter_by(product_id=product_id).order_by(
        Review.created_at.desc(), Review.id.desc()
    )
    if limit:
        query = query.limit(limit)
    return [_review_dict(r) for r in query.all()]


def get_featured_reviews(product_id):
    rows = (
        FeaturedReview.query.filter_by(product_id=product_id)
        .order_by(FeaturedReview.order.asc())
        .limit(FeaturedReview.MAX_PER_PRODUCT)
        .all()
    )
    return [r.to_dict() for r in rows]


def get_product_price_history(product_id, months=None):
    """Chronological price points, optionally only the last ``months``."""
    query = PriceHistory.query.filter_by(product_id=product_id)
    if months:
        cutoff = datetime.now(timezone.utc) - timedelta(days=31 * months)
        query = query.filter(PriceHistory.recorded_at >= cutoff)
    rows = query.order_by(PriceHistory.recorded_at.asc(), PriceHistory.id.asc()).all()
    return [r.to_point() for r in rows]


def get_product_videos(product_id, platform, limit=5):
    rows = (
        ProductVideo.query.filter_by(product_id=product_id, platform=platform)
        .order_by(ProductVideo.sort_order.asc(), ProductVideo.id.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": v.id,
            "video_url": v.video_url,
            "thumbnail_url": v.thumbnail_url,
            "title": v.title,
            "author": v.author,
        }
        for v in rows
    ]


def get_all_brands():
    return [b.to_dict() for b in Brand.query.order_by(Brand.name.asc()).all()]


def _category_sort_key(category):
    if category.slug in PRIORITY_CATEGORY_SLUGS:
        return (0, PRIORITY_CATEGORY_SLUGS.index(category.slug), "")
    return (1, 0, category.name.lower())


def get_all_categories(gender_slugs=None):
    """Categories for the filter sidebar, priority slugs first.

    With ``gender_slugs`` only categories holding published products for
    those genders are returned.
    """
    query = Category.query
    if gender_slugs:
        query = (
            query.join(Product, Product.category_id == Category.id)
            .join(Gender, Gender.id == Product.gender_id)
            .filter(Product.is_published.is_(True), Gender.slug.in_(gender_slugs))
            .distinct()
        )
    categories = sorted(query.all(), key=_category_sort_key)
    return [{"id": c.id, "name": c.name, "slug": c.slug} for c in categories]


def get_recommended_products(product_id, limit=6):
    """Published products sharing category (x3), brand (x2) or gender (x1)."""
    base = db.session.get(Product, product_id)
    if not base:
        return []

    terms = [
        case((column == value, weight), else_=0)
        for column, value, weight in (
            (Product.category_id, base.category_id, 3),
            (Product.brand_id, base.brand_id, 2),
            (Product.gender_id, base.gender_id, 1),
        )
        if value is not None
    ]

    image = _representative_image(any_variant=True)
    query = db.session.query(
        Product.id,
        Product.name,
        _price_aggregate(func.min, []).label("min_price"),
        func.trim(image).label("image_url"),
    ).filter(
        Product.is_published.is_(True),
        Product.id != product_id,
        func.trim(image) != "",
    )
    if terms:
        query = query.order_by(sum(terms[1:], terms[0]).desc())
    rows = query.order_by(Product.created_at.desc(), Product.id.asc()).limit(limit).all()

    return [
        {
            "id": row.id,
            "title": row.name,
            "price": _cents_to_amount(row.min_price),
            "image_url": row.image_url,
        }
        for row in rows
    ]


def search_products(query, limit=10):
    """Search-bar results; needs at least two characters."""
    if not query or len(query.strip()) < 2:
        return []
    return get_all_products(search=query.strip(), sort="newest", page=1, limit=limit).items


def search_brands(query, limit=8):
    brands = get_all_brands()
    if not query or not query.strip():
        return brands[:limit]
    needle = query.strip().lower()
    return [b for b in brands if needle in b["name"].lower()][:limit]
