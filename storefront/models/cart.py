from datetime import datetime, timezone
from storefront.extensions import db


class Cart(db.Model):
    __tablename__ = "carts"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    guest_id = db.Column(
        db.Integer,
        db.ForeignKey("guests.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    items = db.relationship(
        "CartItem", backref="cart", lazy="select", cascade="all, delete-orphan"
    )

    def touch(self):
        self.updated_at = datetime.now(timezone.utc)

    def __repr__(self):
        return f"<Cart {self.id} user={self.user_id} guest={self.guest_id}>"


class CartItem(db.Model):
    __tablename__ = "cart_items"

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(
        db.Integer,
        db.ForeignKey("carts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variant_id = db.Column(
        db.Integer,
        db.ForeignKey("product_variants.id", ondelete="CASCADE"),
        nullable=False,
    )
    quantity = db.Column(db.Integer, nullable=False, default=1)

    variant = db.relationship("ProductVariant", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("cart_id", "variant_id", name="uq_cart_variant"),
    )

    def __repr__(self):
        return f"<CartItem {self.variant_id} x{self.quantity}>"
