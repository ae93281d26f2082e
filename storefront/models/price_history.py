from datetime import datetime, timezone
from sqlalchemy import event
from storefront.extensions import db


class PriceHistory(db.Model):
    __tablename__ = "price_history"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    price_cents = db.Column(db.Integer, nullable=False)
    sale_price_cents = db.Column(db.Integer)
    recorded_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    def to_point(self):
        return {
            "date": self.recorded_at.date().isoformat(),
            "price": self.price_cents / 100,
            "sale_price": (
                self.sale_price_cents / 100
                if self.sale_price_cents is not None
                else None
            ),
        }

    def __repr__(self):
        return f"<PriceHistory {self.product_id} {self.price_cents} @ {self.recorded_at}>"


@event.listens_for(PriceHistory, "before_update")
def _price_history_is_append_only(mapper, connection, target):
    raise ValueError("Price history entries cannot be modified")
