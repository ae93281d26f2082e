"""Admin writes to the append-only price history.

Entries are never edited; a wrong entry is deleted and recorded again.
"""
import logging
from storefront.auth import require_editor
from storefront.extensions import db
from storefront.models.price_history import PriceHistory
from storefront.models.product import Product
from storefront.schemas import PriceHistoryCreate, to_cents
from storefront.services import cache_service
from storefront.services.errors import ActionError

logger = logging.getLogger(__name__)


def _revalidate(product_id):
    cache_service.revalidate_path(f"/admin/products/{product_id}")
    cache_service.revalidate_path(f"/products/{product_id}")


def get_price_history(product_id):
    require_editor()
    rows = (
        PriceHistory.query.filter_by(product_id=product_id)
        .order_by(PriceHistory.recorded_at.desc(), PriceHistory.id.desc())
        .all()
    )
    return [{"id": r.id, "recorded_at": r.recorded_at.isoformat(), **r.to_point()} for r in rows]


def create_price_history(payload):
    require_editor()
    data = PriceHistoryCreate.model_validate(payload)
    if not db.session.get(Product, data.product_id):
        raise ActionError("Product not found")

    entry = PriceHistory(
        product_id=data.product_id,
        price_cents=to_cents(data.price),
        sale_price_cents=to_cents(data.sale_price),
    )
    if data.recorded_at:
        entry.recorded_at = data.recorded_at
    db.session.add(entry)
    db.session.commit()
    logger.info(
        "Recorded price %s for product %s", entry.price_cents, entry.product_id
    )
    _revalidate(entry.product_id)
    return entry


def delete_price_history(entry_id):
    require_editor()
    entry = db.session.get(PriceHistory, entry_id)
    if not entry:
        return False
    product_id = entry.product_id
    db.session.delete(entry)
    db.session.commit()
    _revalidate(product_id)
    return True
