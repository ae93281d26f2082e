import math


def page_envelope(pagination):
    """JSON body for one page of a list: items plus paging numbers."""
    limit = pagination.per_page
    return {
        "items": pagination.items,
        "total": pagination.total,
        "page": pagination.page,
        "limit": limit,
        "total_pages": math.ceil(pagination.total / limit) if limit else 0,
    }
