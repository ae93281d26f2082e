"""Tests for the price snapshot job."""
from storefront.models import PriceHistory, Product
from storefront.workers.price_snapshot import current_price, snapshot_product_price


def _history(db, product_id):
    db.session.expire_all()
    return (
        PriceHistory.query.filter_by(product_id=product_id)
        .order_by(PriceHistory.id)
        .all()
    )


def test_current_price_takes_lowest_variant(db, catalog):
    assert tuple(current_price(catalog["runner"].id)) == (12000, 13000)
    assert tuple(current_price(catalog["boot"].id)) == (20000, None)


def test_snapshot_records_once(app, db, catalog):
    product_id = catalog["runner"].id

    assert snapshot_product_price(product_id) is not None
    # Idempotency: same price, nothing new
    assert snapshot_product_price(product_id) is None

    history = _history(db, product_id)
    assert [(h.price_cents, h.sale_price_cents) for h in history] == [(12000, 13000)]


def test_snapshot_after_price_change(app, db, catalog):
    product_id = catalog["boot"].id
    snapshot_product_price(product_id)

    variant = catalog["variants"]["TB-BLK-10"]
    variant.sale_price_cents = 15000
    db.session.commit()
    assert snapshot_product_price(product_id) is not None

    history = _history(db, product_id)
    assert [(h.price_cents, h.sale_price_cents) for h in history] == [
        (20000, None),
        (20000, 15000),
    ]


def test_snapshot_skips_missing_and_empty_products(app, db):
    assert snapshot_product_price(999999) is None

    product = Product(name="No Variants", slug="no-variants")
    db.session.add(product)
    db.session.commit()
    assert snapshot_product_price(product.id) is None
    assert _history(db, product.id) == []


def test_snapshot_waits_for_running_job(app, db, catalog, redis, queue, monkeypatch):
    product_id = catalog["boot"].id
    assert snapshot_product_price(product_id) is not None
    assert redis.get(f"price_snapshot:{product_id}") is None

    variant = catalog["variants"]["TB-BLK-10"]
    variant.sale_price_cents = 17500
    db.session.commit()

    held = redis.lock(f"price_snapshot:{product_id}", timeout=60)
    assert held.acquire(blocking=False)
    monkeypatch.setitem(app.config, "PRICE_SNAPSHOT_LOCK_WAIT", 0.2)
    assert snapshot_product_price(product_id) is None
    held.release()

    # the newer price is retried, not dropped
    assert queue.jobs == [("snapshot_product_price", (product_id,))]
    assert len(_history(db, product_id)) == 1

    assert snapshot_product_price(product_id) is not None
    history = _history(db, product_id)
    assert [(h.price_cents, h.sale_price_cents) for h in history] == [
        (20000, None),
        (20000, 17500),
    ]
