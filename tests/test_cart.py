"""Tests for carts, guest sessions and the cart JSON endpoints."""
from datetime import datetime, timedelta, timezone
import pytest
from storefront.models import Address, Cart, CartItem, Guest, Order
from storefront.services import cart_service


@pytest.fixture
def guest_cart(db):
    guest = cart_service.create_guest_session()
    return cart_service.get_or_create_cart(guest=guest)


def test_add_merges_lines(catalog, guest_cart):
    variant = catalog["variants"]["FF-BLK-9"]
    assert cart_service.add_cart_item(guest_cart, variant.id, 2) == {"ok": True, "error": None}
    assert cart_service.add_cart_item(guest_cart, variant.id, 3)["ok"]

    cart = cart_service.cart_to_dict(guest_cart)
    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 5
    assert cart["item_count"] == 5
    assert cart["total"] == 600.0


def test_merged_quantity_is_capped(catalog, guest_cart):
    variant = catalog["variants"]["FF-BLK-9"]
    cart_service.add_cart_item(guest_cart, variant.id, 60)
    cart_service.add_cart_item(guest_cart, variant.id, 60)
    assert guest_cart.items[0].quantity == cart_service.MAX_LINE_QUANTITY


def test_add_rejects_bad_input(catalog, guest_cart):
    result = cart_service.add_cart_item(guest_cart, catalog["variants"]["FF-BLK-9"].id, 0)
    assert result["ok"] is False
    assert result["error"].startswith("quantity")

    assert cart_service.add_cart_item(guest_cart, 999999)["error"] == "Variant not found"


def test_cart_uses_sale_price(catalog, guest_cart):
    cart_service.add_cart_item(guest_cart, catalog["variants"]["FF-WHT-10"].id, 2)
    item = cart_service.cart_to_dict(guest_cart)["items"][0]
    assert item["unit_price"] == 130.0
    assert item["line_total"] == 260.0
    assert item["color"] == "White"
    assert item["image_url"] == "/uploads/images/runner.jpg"


def test_update_and_remove_only_touch_own_cart(db, catalog, guest_cart):
    other = cart_service.get_or_create_cart(guest=cart_service.create_guest_session())
    cart_service.add_cart_item(other, catalog["variants"]["TB-BLK-10"].id)
    foreign_item = other.items[0]

    assert cart_service.update_cart_item(guest_cart, foreign_item.id, 3)["error"] == "Cart item not found"
    assert cart_service.remove_cart_item(guest_cart, foreign_item.id)["ok"] is False
    assert db.session.get(CartItem, foreign_item.id).quantity == 1

    cart_service.add_cart_item(guest_cart, catalog["variants"]["FF-BLK-9"].id)
    own = guest_cart.items[0]
    assert cart_service.update_cart_item(guest_cart, own.id, 4)["ok"]
    assert own.quantity == 4
    assert cart_service.update_cart_item(guest_cart, own.id, 100)["ok"] is False
    assert cart_service.remove_cart_item(guest_cart, own.id)["ok"]
    assert cart_service.cart_to_dict(guest_cart)["items"] == []


def test_clear_cart(catalog, guest_cart):
    cart_service.add_cart_item(guest_cart, catalog["variants"]["FF-BLK-9"].id)
    cart_service.add_cart_item(guest_cart, catalog["variants"]["TB-BLK-10"].id)
    cart_service.clear_cart(guest_cart)
    assert CartItem.query.filter_by(cart_id=guest_cart.id).count() == 0


def test_empty_cart_dict():
    assert cart_service.cart_to_dict(None) == {"id": None, "items": [], "total": 0, "item_count": 0}


def test_expired_guest_is_removed(db):
    guest = Guest(
        session_token="stale-token",
        expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
    )
    db.session.add(guest)
    db.session.commit()

    assert cart_service.guest_session("stale-token") is None
    assert Guest.query.count() == 0

    fresh = cart_service.create_guest_session("stale-token")
    assert fresh.session_token != "stale-token"


def test_guest_cart_moves_to_user_on_sign_in(db, catalog, make_user, guest_cart):
    user = make_user()
    cart_service.add_cart_item(guest_cart, catalog["variants"]["FF-BLK-9"].id)

    cart = cart_service.get_or_create_cart(user, guest_cart.guest)
    assert cart.id == guest_cart.id
    assert (cart.user_id, cart.guest_id) == (user.id, None)
    assert cart_service.get_cart(user)["item_count"] == 1


def test_cart_needs_an_owner(db):
    with pytest.raises(ValueError):
        cart_service.get_or_create_cart()


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

def test_anonymous_add_starts_guest_session(client, catalog):
    assert client.get("/cart").get_json()["items"] == []

    variant = catalog["variants"]["FF-BLK-9"]
    response = client.post("/cart/items", json={"variant_id": variant.id, "quantity": 2})
    assert response.status_code == 200
    body = response.get_json()
    assert body["ok"] is True
    assert body["cart"]["item_count"] == 2

    cookie = client.get_cookie(cart_service.GUEST_COOKIE)
    assert cookie is not None
    assert Guest.query.filter_by(session_token=cookie.value).count() == 1

    # the cookie brings the same cart back
    client.post("/cart/items", json={"variant_id": variant.id})
    assert client.get("/cart").get_json()["item_count"] == 3
    assert Cart.query.count() == 1


def test_cart_endpoint_errors_carry_the_cart(client, catalog):
    response = client.post("/cart/items", json={"variant_id": 999999})
    assert response.status_code == 400
    body = response.get_json()
    assert body["ok"] is False
    assert body["error"] == "Variant not found"
    assert body["cart"]["items"] == []


def test_update_remove_and_clear_endpoints(client, catalog):
    client.post("/cart/items", json={"variant_id": catalog["variants"]["FF-BLK-9"].id})
    client.post("/cart/items", json={"variant_id": catalog["variants"]["TB-BLK-10"].id})
    first, second = client.get("/cart").get_json()["items"]

    body = client.patch(f"/cart/items/{first['id']}", json={"quantity": 3}).get_json()
    assert body["cart"]["item_count"] == 4

    body = client.delete(f"/cart/items/{second['id']}").get_json()
    assert [i["id"] for i in body["cart"]["items"]] == [first["id"]]

    assert client.delete(f"/cart/items/{second['id']}").status_code == 400
    assert client.delete("/cart").get_json()["cart"]["items"] == []


def test_checkout_requires_sign_in(client, catalog):
    response = client.post("/checkout")
    assert response.status_code == 401
    assert response.get_json() == {"error": "Unauthorized"}


def test_checkout_places_order(client, catalog, make_user, login):
    user = make_user()
    login(user)
    client.post("/cart/items", json={"variant_id": catalog["variants"]["FF-BLK-9"].id, "quantity": 2})

    response = client.post("/checkout", json={})
    assert response.status_code == 201
    body = response.get_json()
    order = Order.query.filter_by(id=body["order_id"]).one()
    assert order.user_id == user.id
    assert order.total_cents == 24000
    assert body["order"]["items"][0]["variant_sku"] == "FF-BLK-9"
    assert client.get("/cart").get_json()["items"] == []

    empty = client.post("/checkout", json={})
    assert empty.status_code == 400
    assert empty.get_json() == {"error": "Cart is empty"}


def test_checkout_coerces_address_ids(client, db, catalog, make_user, login):
    user = make_user()
    address = Address(user_id=user.id, line1="1 Main St", city="Austin", country="US", postal_code="78701")
    db.session.add(address)
    db.session.commit()
    login(user)
    client.post("/cart/items", json={"variant_id": catalog["variants"]["FF-BLK-9"].id})

    bad = client.post("/checkout", json={"shippingAddressId": "home"})
    assert bad.status_code == 400
    assert bad.get_json()["details"][0]["loc"] == ["shippingAddressId"]

    response = client.post(
        "/checkout",
        json={"shipping_address_id": str(address.id), "billingAddressId": address.id},
    )
    assert response.status_code == 201
    order = Order.query.filter_by(id=response.get_json()["order_id"]).one()
    assert (order.shipping_address_id, order.billing_address_id) == (address.id, address.id)
