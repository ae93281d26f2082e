import logging
from sqlalchemy import String, cast, or_
from storefront.auth import require_editor
from storefront.extensions import db
from storefront.models.cart import Cart
from storefront.models.filters import Color, Size
from storefront.models.image import ProductImage
from storefront.models.order import Order, OrderItem
from storefront.models.product import Product
from storefront.models.user import Address, User
from storefront.models.variant import ProductVariant
from storefront.schemas import OrderStatusUpdate
from storefront.services import cache_service
from storefront.services.errors import ActionError

logger = logging.getLogger(__name__)


def _item_image():
    """Image for an order line: the variant's own or a product-wide one."""
    return (
        db.select(ProductImage.url)
        .where(
            ProductImage.product_id == Product.id,
            or_(
                ProductImage.variant_id == ProductVariant.id,
                ProductImage.variant_id.is_(None),
            ),
        )
        .order_by(ProductImage.is_primary.desc(), ProductImage.sort_order.asc())
        .limit(1)
        .correlate(Product, ProductVariant)
        .scalar_subquery()
    )


def _order_items(order_id):
    rows = (
        db.session.query(
            OrderItem.id,
            OrderItem.variant_id,
            OrderItem.quantity,
            OrderItem.price_at_purchase_cents,
            Product.id.label("product_id"),
            Product.name.label("product_name"),
            ProductVariant.sku.label("variant_sku"),
            Color.name.label("color_name"),
            Size.name.label("size_name"),
            _item_image().label("image_url"),
        )
        .select_from(OrderItem)
        .join(ProductVariant, ProductVariant.id == OrderItem.variant_id)
        .join(Product, Product.id == ProductVariant.product_id)
        .outerjoin(Color, Color.id == ProductVariant.color_id)
        .outerjoin(Size, Size.id == ProductVariant.size_id)
        .filter(OrderItem.order_id == order_id)
        .order_by(OrderItem.id.asc())
        .all()
    )
    return [
        {
            "id": row.id,
            "product_id": row.product_id,
            "product_name": row.product_name,
            "variant_id": row.variant_id,
            "variant_sku": row.variant_sku,
            "color": row.color_name,
            "size": row.size_name,
            "quantity": row.quantity,
            "price_at_purchase": row.price_at_purchase_cents / 100,
            "image_url": (row.image_url or "").strip() or None,
        }
        for row in rows
    ]


def get_order(order_id):
    """Order with its line items, or None when the order does not exist."""
    order = db.session.get(Order, order_id)
    if not order:
        return None
    return {
        "id": order.id,
        "user_id": order.user_id,
        "status": order.status,
        "total_amount": order.total_amount,
        "created_at": order.created_at,
        "items": _order_items(order.id),
    }


def _user_summary(user):
    if not user:
        return None
    return {"id": user.id, "name": user.name, "email": user.email}


def get_admin_orders(status=None, user_id=None, search="", page=1, limit=20):
    require_editor()

    query = Order.query.outerjoin(User, User.id == Order.user_id)
    if status:
        query = query.filter(Order.status == status)
    if user_id:
        query = query.filter(Order.user_id == user_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(cast(Order.id, String).ilike(pattern), User.email.ilike(pattern))
        )

    pagination = query.order_by(Order.created_at.desc(), Order.id.desc()).paginate(
        page=page, per_page=limit, error_out=False
    )
    pagination.items = [
        {
            "id": o.id,
            "user_id": o.user_id,
            "status": o.status,
            "total_amount": o.total_amount,
            "created_at": o.created_at,
            "user": _user_summary(o.user),
        }
        for o in pagination.items
    ]
    return pagination


def get_order_details(order_id):
    """Admin view of an order: user, items and both addresses."""
    require_editor()

    order = db.session.get(Order, order_id)
    if not order:
        return None

    shipping = (
        db.session.get(Address, order.shipping_address_id)
        if order.shipping_address_id
        else None
    )
    billing = (
        db.session.get(Address, order.billing_address_id)
        if order.billing_address_id
        else None
    )
    return {
        "order": {
            "id": order.id,
            "user_id": order.user_id,
            "status": order.status,
            "total_amount": order.total_amount,
            "created_at": order.created_at,
            "user": _user_summary(order.user),
        },
        "items": _order_items(order.id),
        "shipping_address": shipping.to_dict() if shipping else None,
        "billing_address": billing.to_dict() if billing else None,
    }


def update_order_status(order_id, status):
    """Move an order to another status. Line items are never touched."""
    require_editor()
    data = OrderStatusUpdate.model_validate({"status": status})

    order = db.session.get(Order, order_id)
    if not order:
        return None
    old_status = order.status
    order.status = data.status
    db.session.commit()
    logger.info("Order %s status %s -> %s", order.id, old_status, order.status)

    cache_service.revalidate_path("/admin/orders")
    cache_service.revalidate_path(f"/admin/orders/{order.id}")
    return order


def _take_stock(variant_id, quantity):
    """Decrement stock in one statement; False when there is not enough."""
    updated = ProductVariant.query.filter(
        ProductVariant.id == variant_id,
        ProductVariant.in_stock >= quantity,
    ).update(
        {ProductVariant.in_stock: ProductVariant.in_stock - quantity},
        synchronize_session=False,
    )
    return updated == 1


def place_order(user, cart_id, shipping_address_id=None, billing_address_id=None):
    """Turn a cart into an order and empty the cart.

    Each line stores the price the customer pays at this moment (sale price
    when set); later variant price or stock changes never alter it. Stock is
    taken with a guarded relative UPDATE so concurrent checkouts cannot
    oversell; if any line falls short the whole checkout is rolled back.
    """
    cart = db.session.get(Cart, cart_id)
    if not cart or not cart.items:
        raise ActionError("Cart is empty")

    own_addresses = {a.id for a in user.addresses}
    for address_id in (shipping_address_id, billing_address_id):
        if address_id is not None and address_id not in own_addresses:
            raise ActionError("Unknown address")

    lines = [
        (item.variant_id, item.variant.product_id, item.variant.sku, item.quantity,
         item.variant.effective_price_cents)
        for item in cart.items
    ]
    for variant_id, _, sku, quantity, _ in lines:
        if not _take_stock(variant_id, quantity):
            db.session.rollback()
            raise ActionError(f"Not enough stock for {sku}")

    order = Order(
        user_id=user.id,
        status="pending",
        total_cents=sum(quantity * price for _, _, _, quantity, price in lines),
        shipping_address_id=shipping_address_id,
        billing_address_id=billing_address_id,
    )
    db.session.add(order)
    for variant_id, _, _, quantity, price in lines:
        order.items.append(
            OrderItem(
                variant_id=variant_id,
                quantity=quantity,
                price_at_purchase_cents=price,
            )
        )

    cart.items.clear()
    cart.touch()
    db.session.commit()
    logger.info("Order %s placed by user %s (%d items)", order.id, user.id, len(lines))

    cache_service.revalidate_product_pages(line[1] for line in lines)
    return order
