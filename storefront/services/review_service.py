import logging
from sqlalchemy import or_
from storefront.auth import require_editor
from storefront.extensions import db
from storefront.models.product import Product
from storefront.models.review import FeaturedReview, Review
from storefront.schemas import ReviewCreate
from storefront.services import cache_service
from storefront.services.errors import ActionError

logger = logging.getLogger(__name__)


def _revalidate(product_id):
    cache_service.revalidate_path("/admin/reviews")
    cache_service.revalidate_product_pages([product_id])


def _split_name(author):
    parts = author.split(None, 1)
    return parts[0], parts[1] if len(parts) > 1 else ""


def get_admin_reviews(product_id=None, rating=None, search="", page=1, limit=20):
    require_editor()
    query = Review.query.join(Product, Product.id == Review.product_id)
    if product_id:
        query = query.filter(Review.product_id == product_id)
    if rating:
        query = query.filter(Review.rating == rating)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Review.comment.ilike(pattern),
                Review.reviewer_name.ilike(pattern),
                Product.name.ilike(pattern),
            )
        )

    pagination = query.order_by(Review.created_at.desc(), Review.id.desc()).paginate(
        page=page, per_page=limit, error_out=False
    )
    featured_ids = {
        review_id
        for (review_id,) in db.session.query(FeaturedReview.review_id).filter(
            FeaturedReview.review_id.in_([r.id for r in pagination.items])
        )
    }
    pagination.items = [
        {
            "id": r.id,
            "product_id": r.product_id,
            "product_name": r.product.name,
            "author": r.author,
            "rating": r.rating,
            "comment": r.comment,
            "created_at": r.created_at.isoformat() if r.created_at else None,
            "is_featured": r.id in featured_ids,
        }
        for r in pagination.items
    ]
    return pagination


def create_review(payload):
    require_editor()
    data = ReviewCreate.model_validate(payload)
    if not db.session.get(Product, data.product_id):
        raise ActionError("Product not found")

    review = Review(**data.model_dump(exclude_none=True))
    db.session.add(review)
    db.session.commit()
    logger.info("Created review %s on product %s", review.id, review.product_id)
    _revalidate(review.product_id)
    return review


def delete_review(review_id):
    """Delete a review together with any featured entries made from it."""
    require_editor()
    review = db.session.get(Review, review_id)
    if not review:
        return False

    product_id = review.product_id
    removed = FeaturedReview.query.filter_by(review_id=review.id).delete()
    db.session.delete(review)
    db.session.commit()
    logger.info("Deleted review %s (%d featured entries)", review_id, removed)
    _revalidate(product_id)
    return True


def set_featured_review(review_id, featured=True):
    """Feature a review on its product page, or stop featuring it.

    A product shows at most three featured reviews; each takes the lowest
    free display slot.
    """
    require_editor()
    review = db.session.get(Review, review_id)
    if not review:
        return None

    existing = FeaturedReview.query.filter_by(review_id=review.id).all()
    if not featured:
        for row in existing:
            db.session.delete(row)
        db.session.commit()
        _revalidate(review.product_id)
        return None
    if existing:
        return existing[0]

    taken = {
        order
        for (order,) in db.session.query(FeaturedReview.order).filter_by(
            product_id=review.product_id
        )
    }
    free = [n for n in range(1, FeaturedReview.MAX_PER_PRODUCT + 1) if n not in taken]
    if not free:
        raise ActionError(
            f"A product can have at most {FeaturedReview.MAX_PER_PRODUCT} featured reviews"
        )

    first_name, last_name = _split_name(review.author)
    row = FeaturedReview(
        product_id=review.product_id,
        review_id=review.id,
        first_name=first_name,
        last_name=last_name,
        rating=review.rating,
        comment=review.comment or "",
        order=free[0],
    )
    db.session.add(row)
    db.session.commit()
    _revalidate(review.product_id)
    return row
