"""Cart JSON endpoints. Every response carries the authoritative cart."""
from flask import after_this_request, current_app, request
from storefront.auth import get_current_user, require_auth
from storefront.blueprints.public import public_bp
from storefront.schemas import CheckoutRequest
from storefront.services import cart_service, order_service


def _remember_guest(guest):
    max_age = current_app.config["GUEST_SESSION_DAYS"] * 24 * 3600

    @after_this_request
    def set_cookie(response):
        response.set_cookie(
            cart_service.GUEST_COOKIE,
            guest.session_token,
            max_age=max_age,
            httponly=True,
            samesite="Lax",
            secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        )
        return response


def _cart_owner(create=False):
    """(user, guest) for this request; starts a guest session when asked."""
    user = get_current_user()
    token = request.cookies.get(cart_service.GUEST_COOKIE)
    if user is not None:
        return user, cart_service.guest_session(token)

    if not create:
        return None, cart_service.guest_session(token)
    guest = cart_service.create_guest_session(token)
    if guest.session_token != token:
        _remember_guest(guest)
    return None, guest


def _reply(result, cart):
    body = {**result, "cart": cart_service.cart_to_dict(cart)}
    return body, 200 if result["ok"] else 400


@public_bp.route("/cart", methods=["GET"])
def cart_show():
    user, guest = _cart_owner()
    return cart_service.get_cart(user, guest)


@public_bp.route("/cart/items", methods=["POST"])
def cart_add():
    payload = request.get_json(silent=True) or {}
    cart = cart_service.get_or_create_cart(*_cart_owner(create=True))
    result = cart_service.add_cart_item(
        cart, payload.get("variant_id"), payload.get("quantity", 1)
    )
    return _reply(result, cart)


@public_bp.route("/cart/items/<int:item_id>", methods=["PATCH"])
def cart_update(item_id):
    payload = request.get_json(silent=True) or {}
    cart = cart_service.get_or_create_cart(*_cart_owner(create=True))
    result = cart_service.update_cart_item(cart, item_id, payload.get("quantity"))
    return _reply(result, cart)


@public_bp.route("/cart/items/<int:item_id>", methods=["DELETE"])
def cart_remove(item_id):
    cart = cart_service.get_or_create_cart(*_cart_owner(create=True))
    return _reply(cart_service.remove_cart_item(cart, item_id), cart)


@public_bp.route("/cart", methods=["DELETE"])
def cart_clear():
    cart = cart_service.get_or_create_cart(*_cart_owner(create=True))
    return _reply(cart_service.clear_cart(cart), cart)


@public_bp.route("/checkout", methods=["POST"])
def checkout():
    """Place an order from the signed-in user's cart."""
    user = require_auth()
    data = CheckoutRequest.model_validate(request.get_json(silent=True) or {})
    cart = cart_service.get_or_create_cart(user, _cart_owner()[1])
    order = order_service.place_order(
        user,
        cart.id,
        shipping_address_id=data.shipping_address_id,
        billing_address_id=data.billing_address_id,
    )
    return {"order_id": order.id, "order": order_service.get_order(order.id)}, 201
