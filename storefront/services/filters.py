"""Query-string parsing for catalog and admin list pages."""
import math

SORT_KEYS = ("featured", "newest", "price_asc", "price_desc", "most_popular")


def _slug_list(args, name):
    """Accept ``?brand=a,b`` as well as ``?brand=a&brand=b``."""
    values = []
    for raw in args.getlist(name):
        for part in raw.split(","):
            part = part.strip().lower()
            if part and part not in values:
                values.append(part)
    return values


def _to_float(value):
    if value is None or str(value).strip() == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    # "inf" and "nan" parse but cannot be priced
    return number if math.isfinite(number) else None


def _to_int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_price_ranges(raw):
    """Parse ``"0-50,100-"`` into ``[(0.0, 50.0), (100.0, None)]``.

    Malformed pieces are skipped; a range with neither bound is dropped.
    """
    ranges = []
    for piece in (raw or "").split(","):
        piece = piece.strip()
        if not piece or "-" not in piece:
            continue
        low, high = piece.split("-", 1)
        bounds = (_to_float(low), _to_float(high))
        if bounds != (None, None):
            ranges.append(bounds)
    return ranges


def parse_product_filters(args, default_limit=24):
    """Normalize catalog query args into keyword args for get_all_products."""
    sort = (args.get("sort") or "featured").strip().lower()
    if sort not in SORT_KEYS:
        sort = "featured"

    search = (args.get("search") or args.get("q") or "").strip() or None

    return {
        "search": search,
        "gender_slugs": _slug_list(args, "gender"),
        "brand_slugs": _slug_list(args, "brand"),
        "category_slugs": _slug_list(args, "category"),
        "size_slugs": _slug_list(args, "size"),
        "color_slugs": _slug_list(args, "color"),
        "price_min": _to_float(args.get("priceMin") or args.get("min_price")),
        "price_max": _to_float(args.get("priceMax") or args.get("max_price")),
        "price_ranges": parse_price_ranges(args.get("price")),
        "sort": sort,
        "page": max(1, _to_int(args.get("page"), 1)),
        "limit": max(1, _to_int(args.get("limit"), default_limit)),
    }


def parse_page_args(args, default_limit=20):
    """``page``/``limit`` for admin tables, both at least 1."""
    return (
        max(1, _to_int(args.get("page"), 1)),
        max(1, _to_int(args.get("limit"), default_limit)),
    )
