"""Server-side carts for signed-in users and cookie-identified guests.

Every write returns ``{"ok": bool, "error": str | None}``; the JSON views
follow up with the full cart so the browser replaces its copy wholesale.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from flask import current_app
from pydantic import ValidationError
from storefront.extensions import db
from storefront.models.cart import Cart, CartItem
from storefront.models.user import Guest
from storefront.models.variant import ProductVariant
from storefront.schemas import CartItemAdd, CartItemUpdate

logger = logging.getLogger(__name__)

GUEST_COOKIE = "guest_session"
MAX_LINE_QUANTITY = 99


def _as_utc(value):
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _result(error=None):
    return {"ok": error is None, "error": error}


def _first_error(exc):
    err = exc.errors()[0]
    field = ".".join(str(part) for part in err["loc"])
    return f"{field}: {err['msg']}" if field else err["msg"]


# ---------------------------------------------------------------------------
# Guest sessions
# ---------------------------------------------------------------------------

def guest_session(token):
    """Guest for a cookie token, or None. Expired guests are deleted."""
    if not token:
        return None
    guest = Guest.query.filter_by(session_token=token).first()
    if not guest:
        return None
    if _as_utc(guest.expires_at) <= datetime.now(timezone.utc):
        logger.info("Guest session %s expired, removing", guest.id)
        db.session.delete(guest)
        db.session.commit()
        return None
    return guest


def create_guest_session(token=None):
    """Reuse the guest behind ``token`` while valid, else start a new one."""
    guest = guest_session(token)
    if guest:
        return guest

    days = current_app.config["GUEST_SESSION_DAYS"]
    guest = Guest(
        session_token=secrets.token_urlsafe(32),
        expires_at=datetime.now(timezone.utc) + timedelta(days=days),
    )
    db.session.add(guest)
    db.session.commit()
    return guest


# ---------------------------------------------------------------------------
# Cart lookup
# ---------------------------------------------------------------------------

def find_cart(user=None, guest=None):
    if user:
        cart = (
            Cart.query.filter_by(user_id=user.id)
            .order_by(Cart.updated_at.desc())
            .first()
        )
        if cart:
            return cart
    if guest:
        return (
            Cart.query.filter_by(guest_id=guest.id)
            .order_by(Cart.updated_at.desc())
            .first()
        )
    return None


def get_or_create_cart(user=None, guest=None):
    """The caller's cart, created on first use.

    A guest cart found for a signed-in user is handed over to that user.
    """
    cart = find_cart(user, guest)
    if cart:
        if user and cart.user_id is None:
            cart.user_id = user.id
            cart.guest_id = None
            db.session.commit()
            logger.info("Guest cart %s moved to user %s", cart.id, user.id)
        return cart

    if user:
        cart = Cart(user_id=user.id)
    elif guest:
        cart = Cart(guest_id=guest.id)
    else:
        raise ValueError("A cart needs a user or a guest")
    db.session.add(cart)
    db.session.commit()
    return cart


def _item_dict(item):
    variant = item.variant
    product = variant.product
    unit_cents = variant.effective_price_cents
    image = product.primary_image
    return {
        "id": item.id,
        "variant_id": variant.id,
        "product_id": product.id,
        "product_name": product.name,
        "sku": variant.sku,
        "color": variant.color.name if variant.color else None,
        "size": variant.size.name if variant.size else None,
        "quantity": item.quantity,
        "unit_price": unit_cents / 100,
        "line_total": unit_cents * item.quantity / 100,
        "image_url": image.url if image else None,
    }


def cart_to_dict(cart):
    if not cart:
        return {"id": None, "items": [], "total": 0, "item_count": 0}
    items = sorted(cart.items, key=lambda i: i.id)
    total_cents = sum(i.variant.effective_price_cents * i.quantity for i in items)
    return {
        "id": cart.id,
        "items": [_item_dict(i) for i in items],
        "total": total_cents / 100,
        "item_count": sum(i.quantity for i in items),
    }


def get_cart(user=None, guest=None):
    return cart_to_dict(find_cart(user, guest))


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def add_cart_item(cart, variant_id, quantity=1):
    """Add a variant, merging into the existing line for it."""
    try:
        data = CartItemAdd.model_validate({"variant_id": variant_id, "quantity": quantity})
    except ValidationError as e:
        return _result(_first_error(e))

    if not db.session.get(ProductVariant, data.variant_id):
        return _result("Variant not found")

    item = CartItem.query.filter_by(cart_id=cart.id, variant_id=data.variant_id).first()
    if item:
        item.quantity = min(MAX_LINE_QUANTITY, item.quantity + data.quantity)
    else:
        cart.items.append(CartItem(variant_id=data.variant_id, quantity=data.quantity))
    cart.touch()
    db.session.commit()
    return _result()


def _own_item(cart, cart_item_id):
    return CartItem.query.filter_by(id=cart_item_id, cart_id=cart.id).first()


def update_cart_item(cart, cart_item_id, quantity):
    try:
        data = CartItemUpdate.model_validate(
            {"cart_item_id": cart_item_id, "quantity": quantity}
        )
    except ValidationError as e:
        return _result(_first_error(e))

    item = _own_item(cart, data.cart_item_id)
    if not item:
        return _result("Cart item not found")
    item.quantity = data.quantity
    cart.touch()
    db.session.commit()
    return _result()


def remove_cart_item(cart, cart_item_id):
    item = _own_item(cart, cart_item_id)
    if not item:
        return _result("Cart item not found")
    cart.items.remove(item)
    cart.touch()
    db.session.commit()
    return _result()


def clear_cart(cart):
    cart.items.clear()
    cart.touch()
    db.session.commit()
    return _result()
