from datetime import datetime, timezone
from sqlalchemy import event
from storefront.extensions import db


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    total_cents = db.Column(db.Integer, nullable=False)
    shipping_address_id = db.Column(
        db.Integer, db.ForeignKey("addresses.id", ondelete="SET NULL")
    )
    billing_address_id = db.Column(
        db.Integer, db.ForeignKey("addresses.id", ondelete="SET NULL")
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = db.relationship("User", lazy="joined")
    items = db.relationship(
        "OrderItem", backref="order", lazy="select", cascade="all, delete-orphan"
    )

    VALID_STATUSES = ("pending", "paid", "shipped", "delivered", "cancelled")

    @property
    def total_amount(self):
        return self.total_cents / 100

    def __repr__(self):
        return f"<Order {self.id} [{self.status}]>"


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variant_id = db.Column(
        db.Integer,
        db.ForeignKey("product_variants.id", ondelete="RESTRICT"),
        nullable=False,
    )
    quantity = db.Column(db.Integer, nullable=False)
    price_at_purchase_cents = db.Column(db.Integer, nullable=False)

    variant = db.relationship("ProductVariant", lazy="joined")

    def __repr__(self):
        return f"<OrderItem {self.variant_id} x{self.quantity} @ {self.price_at_purchase_cents}>"


@event.listens_for(OrderItem, "before_update")
def _order_items_are_write_once(mapper, connection, target):
    raise ValueError("Order items cannot be modified once created")
