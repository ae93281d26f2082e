import re
import time
from storefront.extensions import db


def slugify(name):
    """Lowercase, collapse every non-alphanumeric run to '-', trim dashes."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower())
    return slug.strip("-")


def slug_exists(model, slug, exclude_id=None):
    query = db.session.query(model.id).filter(model.slug == slug)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    return db.session.query(query.exists()).scalar()


def unique_slug(model, name, slug=None, exclude_id=None):
    """Slug for a new row: the given one or one derived from ``name``.

    On collision the current epoch milliseconds are appended, so a second
    "New Balance" brand becomes ``new-balance-1735689600000``.
    """
    base = slug or slugify(name)
    if slug_exists(model, base, exclude_id=exclude_id):
        return f"{base}-{int(time.time() * 1000)}"
    return base
