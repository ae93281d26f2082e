from datetime import datetime, timezone
from storefront.extensions import db


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, default="")
    brand_id = db.Column(
        db.Integer,
        db.ForeignKey("brands.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    category_id = db.Column(
        db.Integer,
        db.ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    gender_id = db.Column(
        db.Integer,
        db.ForeignKey("genders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    is_published = db.Column(db.Boolean, nullable=False, default=False, index=True)
    default_variant_id = db.Column(db.Integer)
    manual_rating = db.Column(db.Numeric(3, 2))  # overrides review average
    manual_review_count = db.Column(db.Integer)
    seo_title = db.Column(db.String(255))
    seo_description = db.Column(db.Text)
    seo_keywords = db.Column(db.JSON, default=list)
    amazon_url = db.Column(db.String(1024))
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

    # Relationships
    brand = db.relationship("Brand", lazy="joined")
    category = db.relationship("Category", lazy="joined")
    gender = db.relationship("Gender", lazy="joined")
    variants = db.relationship(
        "ProductVariant",
        backref="product",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="ProductVariant.created_at",
    )
    images = db.relationship(
        "ProductImage",
        backref="product",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="ProductImage.sort_order",
    )
    videos = db.relationship(
        "ProductVideo",
        backref="product",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    reviews = db.relationship(
        "Review", backref="product", lazy="dynamic", cascade="all, delete-orphan"
    )
    featured_reviews = db.relationship(
        "FeaturedReview",
        backref="product",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    price_history = db.relationship(
        "PriceHistory",
        backref="product",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    @property
    def primary_image(self):
        """Variant-less primary image, else the first by sort order."""
        candidates = [img for img in self.images if img.variant_id is None] or self.images
        if not candidates:
            return None
        return sorted(candidates, key=lambda img: (not img.is_primary, img.sort_order))[0]

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "brand_id": self.brand_id,
            "category_id": self.category_id,
            "gender_id": self.gender_id,
            "is_published": self.is_published,
            "default_variant_id": self.default_variant_id,
            "manual_rating": (
                float(self.manual_rating) if self.manual_rating is not None else None
            ),
            "manual_review_count": self.manual_review_count,
            "seo_title": self.seo_title,
            "seo_description": self.seo_description,
            "seo_keywords": self.seo_keywords or [],
            "amazon_url": self.amazon_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Product {self.slug}>"
