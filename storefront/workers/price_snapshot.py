"""RQ worker job: record a product's current price in its price history."""
import logging
from flask import current_app, has_app_context
from sqlalchemy import func
from storefront import extensions
from storefront.extensions import db
from storefront.models.price_history import PriceHistory
from storefront.models.product import Product
from storefront.models.variant import ProductVariant

logger = logging.getLogger(__name__)

_worker_app = None


def _get_app():
    """Return an app instance for worker execution.

    Reuse the current app when already inside an app context (tests/CLI),
    otherwise lazily create the worker app once.
    """
    global _worker_app
    if has_app_context():
        return current_app._get_current_object()
    if _worker_app is None:
        from storefront import create_app

        _worker_app = create_app()
    return _worker_app


def current_price(product_id):
    """(lowest variant price, lowest variant sale price) in cents."""
    return (
        db.session.query(
            func.min(ProductVariant.price_cents),
            func.min(ProductVariant.sale_price_cents),
        )
        .filter(ProductVariant.product_id == product_id)
        .one()
    )


def snapshot_product_price(product_id):
    """Append a price-history entry when the price changed since the last one.

    Idempotency: running it twice without a price change records nothing.
    Returns the new entry, or None when nothing was recorded.
    """
    app = _get_app()
    with app.app_context():
        product = db.session.get(Product, product_id)
        if not product:
            logger.error("Product %d not found", product_id)
            return None

        lock = None
        if extensions.redis_client is not None:
            lock = extensions.redis_client.lock(f"price_snapshot:{product_id}", timeout=60)
            wait = app.config["PRICE_SNAPSHOT_LOCK_WAIT"]
            if not lock.acquire(blocking=True, blocking_timeout=wait):
                # the holder may have read prices before the latest edit
                logger.warning(
                    "Lock for product %d still held after %ss, re-enqueueing", product_id, wait
                )
                extensions.task_queue.enqueue(snapshot_product_price, product_id)
                return None

        try:
            price_cents, sale_price_cents = current_price(product_id)
            if price_cents is None:
                logger.info("Product %d has no variants, nothing to record", product_id)
                return None

            latest = (
                PriceHistory.query.filter_by(product_id=product_id)
                .order_by(PriceHistory.recorded_at.desc(), PriceHistory.id.desc())
                .first()
            )
            if latest and (latest.price_cents, latest.sale_price_cents) == (
                price_cents,
                sale_price_cents,
            ):
                logger.info("Price of product %d unchanged, skipping", product_id)
                return None

            entry = PriceHistory(
                product_id=product_id,
                price_cents=price_cents,
                sale_price_cents=sale_price_cents,
            )
            db.session.add(entry)
            db.session.commit()
            logger.info(
                "Recorded price %d (sale %s) for product %d",
                price_cents,
                sale_price_cents,
                product_id,
            )
            return entry
        finally:
            if lock is not None:
                try:
                    lock.release()
                except Exception:
                    logger.warning("Price snapshot lock for %d already expired", product_id)
