from storefront.extensions import db


brand_categories = db.Table(
    "brand_categories",
    db.Column(
        "brand_id",
        db.Integer,
        db.ForeignKey("brands.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.Column(
        "category_id",
        db.Integer,
        db.ForeignKey("categories.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Brand(db.Model):
    __tablename__ = "brands"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), unique=True, nullable=False, index=True)
    logo_url = db.Column(db.String(1024))

    categories = db.relationship(
        "Category", secondary=brand_categories, backref="brands", lazy="select"
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "logo_url": self.logo_url,
        }

    def __repr__(self):
        return f"<Brand {self.slug}>"
