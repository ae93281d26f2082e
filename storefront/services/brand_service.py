import logging
from storefront.auth import require_editor
from storefront.extensions import db
from storefront.models.brand import Brand
from storefront.models.category import Category
from storefront.models.product import Product
from storefront.schemas import BrandCreate, BrandUpdate
from storefront.services import cache_service
from storefront.services.errors import ActionError
from storefront.services.slug_service import slug_exists, unique_slug

logger = logging.getLogger(__name__)


def _product_ids(brand_id):
    return [row.id for row in db.session.query(Product.id).filter_by(brand_id=brand_id)]


def _revalidate(product_ids=()):
    cache_service.revalidate_path("/admin/brands")
    cache_service.revalidate_product_pages(product_ids)


def _categories(ids):
    if not ids:
        return []
    return Category.query.filter(Category.id.in_(ids)).all()


def get_admin_brands(search="", page=1, limit=20):
    require_editor()
    query = Brand.query
    if search:
        query = query.filter(Brand.name.ilike(f"%{search.strip()}%"))
    pagination = query.order_by(Brand.name.asc()).paginate(
        page=page, per_page=limit, error_out=False
    )
    pagination.items = [
        {**b.to_dict(), "category_ids": [c.id for c in b.categories]}
        for b in pagination.items
    ]
    return pagination


def get_brand(brand_id):
    require_editor()
    brand = db.session.get(Brand, brand_id)
    if not brand:
        return None
    return {**brand.to_dict(), "category_ids": [c.id for c in brand.categories]}


def create_brand(payload):
    require_editor()
    data = BrandCreate.model_validate(payload)

    brand = Brand(
        name=data.name,
        slug=unique_slug(Brand, data.name, data.slug),
        logo_url=data.logo_url,
        categories=_categories(data.category_ids),
    )
    db.session.add(brand)
    db.session.commit()
    logger.info("Created brand %s (%s)", brand.id, brand.slug)
    _revalidate()
    return brand


def update_brand(brand_id, payload):
    require_editor()
    data = BrandUpdate.model_validate(payload)
    brand = db.session.get(Brand, brand_id)
    if not brand:
        return None

    fields = data.model_dump(exclude_unset=True)
    if fields.get("slug") and fields["slug"] != brand.slug:
        if slug_exists(Brand, fields["slug"], exclude_id=brand.id):
            raise ActionError("Slug already exists")
        brand.slug = fields["slug"]
    if "name" in fields and fields["name"]:
        brand.name = fields["name"]
    if "logo_url" in fields:
        brand.logo_url = fields["logo_url"]
    if fields.get("category_ids") is not None:
        brand.categories = _categories(fields["category_ids"])

    db.session.commit()
    _revalidate(_product_ids(brand.id))
    return brand


def delete_brand(brand_id):
    """Delete a brand; its products keep existing without one."""
    require_editor()
    brand = db.session.get(Brand, brand_id)
    if not brand:
        return False
    product_ids = _product_ids(brand.id)
    Product.query.filter_by(brand_id=brand.id).update({"brand_id": None})
    db.session.delete(brand)
    db.session.commit()
    logger.info("Deleted brand %s", brand_id)
    _revalidate(product_ids)
    return True
