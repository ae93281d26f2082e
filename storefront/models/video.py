from datetime import datetime, timezone
from storefront.extensions import db


class ProductVideo(db.Model):
    __tablename__ = "product_videos"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    platform = db.Column(db.String(20), nullable=False, index=True)  # tiktok, youtube
    video_url = db.Column(db.String(1024), nullable=False)
    thumbnail_url = db.Column(db.String(1024))
    title = db.Column(db.String(255))
    author = db.Column(db.String(255))
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    PLATFORMS = {"tiktok", "youtube"}

    def to_dict(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "platform": self.platform,
            "video_url": self.video_url,
            "thumbnail_url": self.thumbnail_url,
            "title": self.title,
            "author": self.author,
            "sort_order": self.sort_order,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<ProductVideo {self.platform} {self.video_url}>"
