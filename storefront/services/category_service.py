import logging
from storefront.auth import require_editor
from storefront.extensions import db
from storefront.models.category import Category
from storefront.models.product import Product
from storefront.schemas import CategoryCreate, CategoryUpdate
from storefront.services import cache_service
from storefront.services.errors import ActionError
from storefront.services.slug_service import slug_exists, unique_slug

logger = logging.getLogger(__name__)


def _revalidate(category_id=None, product_ids=()):
    cache_service.revalidate_path("/admin/categories")
    if category_id:
        cache_service.revalidate_path(f"/admin/categories/{category_id}")
    cache_service.revalidate_product_pages(product_ids)


def _as_tree(categories):
    """Depth-first order, each row tagged with its depth and parent name."""
    by_parent = {}
    names = {c.id: c.name for c in categories}
    for c in categories:
        by_parent.setdefault(c.parent_id, []).append(c)

    ids = set(names)
    # rows whose parent got filtered out are shown as roots
    roots = [c for c in categories if c.parent_id is None or c.parent_id not in ids]

    out = []

    def walk(nodes, depth):
        for c in sorted(nodes, key=lambda c: c.name.lower()):
            out.append(
                {
                    **c.to_dict(),
                    "depth": depth,
                    "parent_name": names.get(c.parent_id),
                }
            )
            walk(by_parent.get(c.id, []), depth + 1)

    walk(roots, 0)
    return out


def get_admin_categories(search="", parent_id=None, hierarchical=False):
    require_editor()
    query = Category.query
    if search:
        query = query.filter(Category.name.ilike(f"%{search.strip()}%"))
    if parent_id == "root":
        query = query.filter(Category.parent_id.is_(None))
    elif parent_id:
        query = query.filter(Category.parent_id == parent_id)
    categories = query.order_by(Category.name.asc()).all()

    if hierarchical:
        return _as_tree(categories)
    return [c.to_dict() for c in categories]


def get_category(category_id):
    require_editor()
    category = db.session.get(Category, category_id)
    if not category:
        return None
    return {
        **category.to_dict(),
        "children": [c.to_dict() for c in category.children],
        "product_count": Product.query.filter_by(category_id=category.id).count(),
    }


def create_category(payload):
    require_editor()
    data = CategoryCreate.model_validate(payload)

    if data.parent_id is not None and not db.session.get(Category, data.parent_id):
        raise ActionError("Parent category not found")

    category = Category(
        name=data.name,
        slug=unique_slug(Category, data.name, data.slug),
        parent_id=data.parent_id,
    )
    db.session.add(category)
    db.session.commit()
    logger.info("Created category %s (%s)", category.id, category.slug)
    _revalidate()
    return category


def quick_create_category(name):
    """Create a top-level category from just a name (product form shortcut)."""
    return create_category({"name": name})


def _is_descendant(category, candidate_parent_id):
    node = db.session.get(Category, candidate_parent_id)
    while node is not None:
        if node.id == category.id:
            return True
        node = node.parent
    return False


def update_category(category_id, payload):
    require_editor()
    data = CategoryUpdate.model_validate(payload)
    category = db.session.get(Category, category_id)
    if not category:
        return None

    fields = data.model_dump(exclude_unset=True)
    if "parent_id" in fields:
        parent_id = fields["parent_id"]
        if parent_id == category.id:
            raise ActionError("A category cannot be its own parent")
        if parent_id is not None:
            if not db.session.get(Category, parent_id):
                raise ActionError("Parent category not found")
            if _is_descendant(category, parent_id):
                raise ActionError("A category cannot be moved under its own subcategory")
        category.parent_id = parent_id

    if fields.get("slug") and fields["slug"] != category.slug:
        if slug_exists(Category, fields["slug"], exclude_id=category.id):
            raise ActionError("Slug already exists")
        category.slug = fields["slug"]
    if fields.get("name"):
        category.name = fields["name"]

    db.session.commit()
    product_ids = [row.id for row in db.session.query(Product.id).filter_by(category_id=category.id)]
    _revalidate(category.id, product_ids)
    return category


def delete_category(category_id):
    """Delete a category that has neither subcategories nor products."""
    require_editor()
    category = db.session.get(Category, category_id)
    if not category:
        return False

    if Category.query.filter_by(parent_id=category.id).count():
        raise ActionError("Cannot delete a category that has subcategories")
    if Product.query.filter_by(category_id=category.id).count():
        raise ActionError("Cannot delete a category that has products")

    db.session.delete(category)
    db.session.commit()
    logger.info("Deleted category %s", category_id)
    _revalidate(category_id)
    return True
