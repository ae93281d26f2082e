from datetime import datetime, timezone
from storefront.extensions import db


class ProductVariant(db.Model):
    __tablename__ = "product_variants"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    color_id = db.Column(
        db.Integer, db.ForeignKey("colors.id", ondelete="RESTRICT"), index=True
    )
    size_id = db.Column(
        db.Integer, db.ForeignKey("sizes.id", ondelete="RESTRICT"), index=True
    )
    sku = db.Column(db.String(100), unique=True, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    sale_price_cents = db.Column(db.Integer)
    in_stock = db.Column(db.Integer, nullable=False, default=0)
    weight = db.Column(db.Float)
    dimensions = db.Column(db.JSON)  # {"length": .., "width": .., "height": ..}
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    color = db.relationship("Color", lazy="joined")
    size = db.relationship("Size", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint(
            "product_id", "color_id", "size_id", name="uq_variant_color_size"
        ),
        db.CheckConstraint("in_stock >= 0", name="ck_product_variants_in_stock"),
    )

    @property
    def price(self):
        return self.price_cents / 100

    @property
    def sale_price(self):
        if self.sale_price_cents is None:
            return None
        return self.sale_price_cents / 100

    @property
    def effective_price_cents(self):
        """What a customer pays right now: sale price when set."""
        if self.sale_price_cents is not None:
            return self.sale_price_cents
        return self.price_cents

    def to_dict(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "sku": self.sku,
            "price": self.price,
            "sale_price": self.sale_price,
            "color_id": self.color_id,
            "size_id": self.size_id,
            "in_stock": self.in_stock,
            "weight": self.weight,
            "dimensions": self.dimensions,
            "color": self.color.to_dict() if self.color else None,
            "size": self.size.to_dict() if self.size else None,
        }

    def __repr__(self):
        return f"<Variant {self.sku}>"
