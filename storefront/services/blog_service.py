import logging
from sqlalchemy import or_
from storefront.auth import require_editor
from storefront.extensions import db
from storefront.models.blog import BlogPost
from storefront.schemas import BlogPostCreate, BlogPostUpdate
from storefront.services import cache_service
from storefront.services.errors import ActionError
from storefront.services.slug_service import slug_exists, unique_slug

logger = logging.getLogger(__name__)

ADMIN_SORTS = {
    "date_desc": (BlogPost.date.desc(),),
    "date_asc": (BlogPost.date.asc(),),
    "title_asc": (BlogPost.title.asc(),),
    "title_desc": (BlogPost.title.desc(),),
}


def _revalidate(slug=None):
    cache_service.revalidate_path("/admin/blog")
    cache_service.revalidate_path("/")
    cache_service.revalidate_path("/blog")
    cache_service.revalidate_path("/sitemap.xml")
    if slug:
        cache_service.revalidate_path(f"/blog/{slug}")


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def get_published_posts(category=None, page=1, limit=12):
    query = BlogPost.query.filter(BlogPost.is_published.is_(True))
    if category:
        query = query.filter(BlogPost.category == category)
    return query.order_by(BlogPost.date.desc(), BlogPost.id.desc()).paginate(
        page=page, per_page=limit, error_out=False
    )


def get_published_post(slug):
    return BlogPost.query.filter_by(slug=slug, is_published=True).first()


def get_sitemap_posts():
    """(slug, last modified) for every published post."""
    return (
        db.session.query(BlogPost.slug, BlogPost.updated_at, BlogPost.date)
        .filter(BlogPost.is_published.is_(True))
        .order_by(BlogPost.date.desc())
        .all()
    )


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

def get_admin_posts(search="", category=None, published=None, sort="date_desc", page=1, limit=20):
    require_editor()
    query = BlogPost.query
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(BlogPost.title.ilike(pattern), BlogPost.excerpt.ilike(pattern))
        )
    if category:
        query = query.filter(BlogPost.category == category)
    if published is not None:
        query = query.filter(BlogPost.is_published.is_(published))

    order = ADMIN_SORTS.get(sort, ADMIN_SORTS["date_desc"])
    pagination = query.order_by(*order, BlogPost.id.desc()).paginate(
        page=page, per_page=limit, error_out=False
    )
    pagination.items = [p.to_dict() for p in pagination.items]
    return pagination


def get_post(post_id):
    require_editor()
    post = db.session.get(BlogPost, post_id)
    return post.to_dict() if post else None


def create_post(payload):
    user, _ = require_editor()
    data = BlogPostCreate.model_validate(payload)

    fields = data.model_dump(exclude={"slug"}, exclude_none=True)
    post = BlogPost(**fields)
    post.slug = unique_slug(BlogPost, data.title, data.slug)
    if post.author_id is None:
        post.author_id = user.id
    db.session.add(post)
    db.session.commit()
    logger.info("Created blog post %s (%s)", post.id, post.slug)
    _revalidate(post.slug)
    return post


def update_post(post_id, payload):
    require_editor()
    data = BlogPostUpdate.model_validate(payload)
    post = db.session.get(BlogPost, post_id)
    if not post:
        return None

    fields = data.model_dump(exclude_unset=True)
    old_slug = post.slug
    slug = fields.pop("slug", None)
    if slug and slug != post.slug:
        if slug_exists(BlogPost, slug, exclude_id=post.id):
            raise ActionError("Slug already exists")
        post.slug = slug
    for key in ("title", "category", "is_published", "date"):
        if key in fields and fields[key] is None:
            fields.pop(key)

    for field, value in fields.items():
        setattr(post, field, value)
    db.session.commit()

    _revalidate(post.slug)
    if old_slug != post.slug:
        _revalidate(old_slug)
    return post


def delete_post(post_id):
    require_editor()
    post = db.session.get(BlogPost, post_id)
    if not post:
        return False
    slug = post.slug
    db.session.delete(post)
    db.session.commit()
    logger.info("Deleted blog post %s", post_id)
    _revalidate(slug)
    return True
