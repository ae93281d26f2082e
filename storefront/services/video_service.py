import logging
from sqlalchemy import or_
from storefront.auth import require_editor
from storefront.extensions import db
from storefront.models.product import Product
from storefront.models.video import ProductVideo
from storefront.schemas import VideoCreate, VideoUpdate
from storefront.services import cache_service
from storefront.services.errors import ActionError

logger = logging.getLogger(__name__)


def _revalidate(product_id):
    cache_service.revalidate_path("/admin/videos")
    cache_service.revalidate_path(f"/products/{product_id}")


def get_admin_videos(search="", product_id=None, platform=None, page=1, limit=20):
    require_editor()
    query = ProductVideo.query.join(Product, Product.id == ProductVideo.product_id)
    if platform:
        query = query.filter(ProductVideo.platform == platform)
    if product_id:
        query = query.filter(ProductVideo.product_id == product_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                ProductVideo.title.ilike(pattern),
                ProductVideo.author.ilike(pattern),
                ProductVideo.video_url.ilike(pattern),
            )
        )

    pagination = query.order_by(
        ProductVideo.created_at.desc(), ProductVideo.id.desc()
    ).paginate(page=page, per_page=limit, error_out=False)
    pagination.items = [
        {**v.to_dict(), "product_name": v.product.name} for v in pagination.items
    ]
    return pagination


def get_video(video_id):
    require_editor()
    video = db.session.get(ProductVideo, video_id)
    return video.to_dict() if video else None


def create_video(payload):
    require_editor()
    data = VideoCreate.model_validate(payload)
    if not db.session.get(Product, data.product_id):
        raise ActionError("Product not found")

    video = ProductVideo(**data.model_dump())
    db.session.add(video)
    db.session.commit()
    logger.info("Added %s video %s to product %s", video.platform, video.id, video.product_id)
    _revalidate(video.product_id)
    return video


def update_video(video_id, payload):
    """Partial update; the merged result must still be a valid video."""
    require_editor()
    changes = VideoUpdate.model_validate(payload).model_dump(exclude_unset=True)
    video = db.session.get(ProductVideo, video_id)
    if not video:
        return None
    if changes.get("product_id") and not db.session.get(Product, changes["product_id"]):
        raise ActionError("Product not found")

    merged = VideoCreate.model_validate(
        {
            "product_id": video.product_id,
            "platform": video.platform,
            "video_url": video.video_url,
            "thumbnail_url": video.thumbnail_url,
            "title": video.title,
            "author": video.author,
            "sort_order": video.sort_order,
            **changes,
        }
    )
    old_product_id = video.product_id
    for field, value in merged.model_dump().items():
        setattr(video, field, value)
    db.session.commit()

    _revalidate(video.product_id)
    if old_product_id != video.product_id:
        _revalidate(old_product_id)
    return video


def delete_video(video_id):
    require_editor()
    video = db.session.get(ProductVideo, video_id)
    if not video:
        return False
    product_id = video.product_id
    db.session.delete(video)
    db.session.commit()
    _revalidate(product_id)
    return True
