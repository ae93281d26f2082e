from datetime import datetime, timezone
from storefront.extensions import db


class Review(db.Model):
    __tablename__ = "reviews"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    reviewer_name = db.Column(db.String(255))
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text)
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

    __table_args__ = (
        db.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating"),
    )

    @property
    def author(self):
        if self.reviewer_name and self.reviewer_name.strip():
            return self.reviewer_name.strip()
        if self.user:
            if self.user.name and self.user.name.strip():
                return self.user.name.strip()
            return self.user.email
        return "Anonymous"

    def __repr__(self):
        return f"<Review {self.rating}* on {self.product_id}>"


class FeaturedReview(db.Model):
    """Up to three hand-picked reviews shown on a product page."""

    __tablename__ = "featured_reviews"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    review_id = db.Column(
        db.Integer,
        db.ForeignKey("reviews.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, nullable=False)
    order = db.Column(db.Integer, nullable=False)  # 1, 2 or 3
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    MAX_PER_PRODUCT = 3

    def to_dict(self):
        return {
            "id": self.id,
            "review_id": self.review_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "rating": self.rating,
            "comment": self.comment,
            "order": self.order,
        }

    def __repr__(self):
        return f"<FeaturedReview #{self.order} on {self.product_id}>"
