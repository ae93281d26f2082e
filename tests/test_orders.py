"""Tests for order detail assembly, admin order actions and checkout."""
import pytest
from pydantic import ValidationError
from sqlalchemy import event, update
from sqlalchemy.exc import IntegrityError
from storefront.models import Address, Cart, CartItem, Order, OrderItem, ProductImage, ProductVariant
from storefront.services import order_service
from storefront.services.errors import ActionError


def _order(db, user, items):
    order = Order(user_id=user.id, total_cents=sum(v.price_cents * q for v, q in items))
    for variant, quantity in items:
        order.items.append(
            OrderItem(variant_id=variant.id, quantity=quantity, price_at_purchase_cents=variant.price_cents)
        )
    db.session.add(order)
    db.session.commit()
    return order


def test_order_detail_has_one_entry_per_item(db, catalog, make_user):
    user = make_user()
    v = catalog["variants"]
    order = _order(db, user, [(v["FF-BLK-9"], 1), (v["FF-WHT-10"], 2), (v["TB-BLK-10"], 1)])

    detail = order_service.get_order(order.id)
    assert detail["id"] == order.id
    assert len(detail["items"]) == 3
    for item in detail["items"]:
        assert item["product_name"]
        assert item["variant_sku"]
    first = detail["items"][0]
    assert first["variant_sku"] == "FF-BLK-9"
    assert first["color"] == "Black"
    assert first["size"] == "US 9"
    assert first["price_at_purchase"] == 120.0


def test_order_item_image_prefers_variant_image(db, catalog, make_user):
    user = make_user()
    variant = catalog["variants"]["FF-WHT-10"]
    db.session.add(
        ProductImage(product_id=variant.product_id, variant_id=variant.id, url="/white.jpg", is_primary=True, sort_order=-1)
    )
    db.session.commit()
    order = _order(db, user, [(variant, 1), (catalog["variants"]["TB-BLK-10"], 1)])

    items = order_service.get_order(order.id)["items"]
    assert items[0]["image_url"] == "/white.jpg"
    assert items[1]["image_url"] == "/uploads/images/boot.jpg"


def test_missing_order_is_none(db):
    assert order_service.get_order(424242) is None


def test_order_without_items(db, make_user):
    user = make_user()
    order = Order(user_id=user.id, total_cents=0)
    db.session.add(order)
    db.session.commit()

    assert order_service.get_order(order.id)["items"] == []


def test_admin_orders_search_and_details(db, catalog, make_user, as_editor):
    buyer = make_user("buyer@example.com")
    address = Address(user_id=buyer.id, line1="1 Main St", city="Austin", country="US", postal_code="78701")
    db.session.add(address)
    db.session.commit()
    order = _order(db, buyer, [(catalog["variants"]["FF-BLK-9"], 1)])
    order.shipping_address_id = address.id
    db.session.commit()

    result = order_service.get_admin_orders(search="buyer@")
    assert [o["id"] for o in result.items] == [order.id]
    assert result.items[0]["user"]["email"] == "buyer@example.com"
    assert order_service.get_admin_orders(search="nobody").total == 0

    details = order_service.get_order_details(order.id)
    assert details["shipping_address"]["city"] == "Austin"
    assert details["billing_address"] is None
    assert len(details["items"]) == 1
    assert order_service.get_order_details(987654) is None


def test_update_order_status(db, catalog, make_user, as_editor):
    order = _order(db, make_user("buyer@example.com"), [(catalog["variants"]["FF-BLK-9"], 1)])

    assert order_service.update_order_status(order.id, "shipped").status == "shipped"
    with pytest.raises(ValidationError):
        order_service.update_order_status(order.id, "lost")
    assert order_service.update_order_status(123456, "paid") is None


def test_place_order_snapshots_effective_price(db, catalog, make_user):
    user = make_user()
    sale_variant = catalog["variants"]["FF-WHT-10"]
    cart = Cart(user_id=user.id)
    cart.items.append(CartItem(variant_id=sale_variant.id, quantity=2))
    db.session.add(cart)
    db.session.commit()

    order = order_service.place_order(user, cart.id)
    assert order.total_cents == 26000
    assert [i.price_at_purchase_cents for i in order.items] == [13000]
    assert cart.items == []
    assert sale_variant.in_stock == 0

    sale_variant.sale_price_cents = None
    sale_variant.price_cents = 99900
    db.session.commit()
    detail = order_service.get_order(order.id)
    assert detail["items"][0]["price_at_purchase"] == 130.0


def test_place_order_rejects_empty_cart_and_low_stock(db, catalog, make_user):
    user = make_user()
    cart = Cart(user_id=user.id)
    db.session.add(cart)
    db.session.commit()
    with pytest.raises(ActionError):
        order_service.place_order(user, cart.id)

    cart.items.append(CartItem(variant_id=catalog["variants"]["TB-BLK-10"].id, quantity=5))
    db.session.commit()
    with pytest.raises(ActionError):
        order_service.place_order(user, cart.id)


def _cart(db, user, lines):
    cart = Cart(user_id=user.id)
    for variant, quantity in lines:
        cart.items.append(CartItem(variant_id=variant.id, quantity=quantity))
    db.session.add(cart)
    db.session.commit()
    return cart


def test_place_order_decrements_stock_in_sql(db, catalog, make_user):
    variant = catalog["variants"]["FF-BLK-9"]
    user = make_user()
    cart = _cart(db, user, [(variant, 2)])

    statements = []

    def capture(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(db.engine, "before_cursor_execute", capture)
    try:
        order_service.place_order(user, cart.id)
    finally:
        event.remove(db.engine, "before_cursor_execute", capture)

    stock_updates = [
        s for s in statements if s.startswith("UPDATE product_variants") and "in_stock" in s
    ]
    assert len(stock_updates) == 1
    assert "in_stock - " in stock_updates[0]
    assert "in_stock >= " in stock_updates[0]
    assert db.session.get(ProductVariant, variant.id).in_stock == 3


def test_place_order_loses_race_for_last_unit(db, catalog, make_user):
    runner = catalog["variants"]["FF-BLK-9"]
    boot = catalog["variants"]["TB-BLK-10"]
    user = make_user()
    cart = _cart(db, user, [(runner, 2), (boot, 1)])
    runner_id, boot_id = runner.id, boot.id
    assert boot.in_stock == 1

    # another checkout sells the last boot after this cart was loaded
    db.session.execute(
        update(ProductVariant.__table__)
        .where(ProductVariant.__table__.c.id == boot_id)
        .values(in_stock=0)
    )
    db.session.commit()

    with pytest.raises(ActionError, match="TB-BLK-10"):
        order_service.place_order(user, cart.id)

    assert Order.query.count() == 0
    assert CartItem.query.filter_by(cart_id=cart.id).count() == 2
    assert db.session.get(ProductVariant, runner_id).in_stock == 5
    assert db.session.get(ProductVariant, boot_id).in_stock == 0


def test_stock_cannot_go_negative(db, catalog):
    variant = catalog["variants"]["TB-BLK-10"]
    variant.in_stock = -1
    with pytest.raises(IntegrityError):
        db.session.commit()
    db.session.rollback()
