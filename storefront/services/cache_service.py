"""Rendered-page cache in Redis and path invalidation after writes."""
import logging
import re
from functools import wraps
from flask import current_app, request, make_response
from storefront import extensions

logger = logging.getLogger(__name__)

KEY_PREFIX = "page:"


def _key(path, query_string=b""):
    key = f"{KEY_PREFIX}{path}"
    if query_string:
        key += "?" + query_string.decode("utf-8", "replace")
    return key


def cached_page(view):
    """Serve GET responses from Redis until the path is revalidated."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        client = extensions.redis_client
        if client is None or request.method != "GET":
            return view(*args, **kwargs)

        key = _key(request.path, request.query_string)
        try:
            body = client.get(key)
        except Exception:
            logger.exception("Page cache read failed for %s", key)
            body = None
        if body is not None:
            return make_response(body)

        response = make_response(view(*args, **kwargs))
        if response.status_code == 200:
            try:
                client.setex(key, current_app.config["PAGE_CACHE_TTL"], response.get_data())
            except Exception:
                logger.exception("Page cache write failed for %s", key)
        return response

    return wrapper


def _glob_escape(text):
    return re.sub(r"([\\*?\[\]])", r"\\\1", text)


def revalidate_path(path):
    """Drop every cached rendering of ``path`` (any query string).

    Returns the number of entries removed.
    """
    client = extensions.redis_client
    if client is None:
        logger.debug("No page cache configured, nothing to revalidate for %s", path)
        return 0

    keys = [_key(path)]
    keys.extend(client.scan_iter(match=_glob_escape(_key(path)) + r"\?*"))
    removed = client.delete(*keys)
    logger.info("Revalidated %s (%d cached entries)", path, removed)
    return removed


def revalidate_product_pages(product_ids=()):
    """Revalidate the home page, the catalog and each listed product page."""
    removed = revalidate_path("/") + revalidate_path("/products")
    for product_id in sorted(set(product_ids)):
        removed += revalidate_path(f"/products/{product_id}")
    return removed
