"""Back-office JSON endpoints.

List endpoints take their filters from the query string and answer with the
pagination envelope; writes take a JSON (or form) body.
"""
from flask import abort, current_app, request
from storefront.auth import require_editor, set_user_role
from storefront.blueprints.admin import admin_bp
from storefront.blueprints.envelope import page_envelope
from storefront.services import (
    blog_service,
    brand_service,
    category_service,
    order_service,
    price_history_service,
    product_admin_service,
    review_service,
    video_service,
)
from storefront.services.filters import parse_page_args


def _payload():
    return request.get_json(silent=True) or request.form.to_dict()


def _page_args():
    return parse_page_args(request.args, default_limit=current_app.config["ADMIN_PAGE_SIZE"])


def _bool_arg(name):
    value = (request.args.get(name) or "").strip().lower()
    if value in ("true", "1", "yes", "published"):
        return True
    if value in ("false", "0", "no", "draft"):
        return False
    return None


def _parent_arg():
    value = request.args.get("parent_id", "")
    if value == "root":
        return value
    return int(value) if value.isdigit() else None


def _found(value):
    if value is None or value is False:
        abort(404)
    return value


def _deleted(ok):
    _found(ok)
    return {"ok": True}


@admin_bp.route("/")
def dashboard():
    user, role = require_editor()
    return {"user": {"id": user.id, "email": user.email}, "role": role}


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

@admin_bp.route("/orders")
def orders():
    page, limit = _page_args()
    return page_envelope(
        order_service.get_admin_orders(
            status=request.args.get("status"),
            user_id=request.args.get("user_id", type=int),
            search=request.args.get("search", ""),
            page=page,
            limit=limit,
        )
    )


@admin_bp.route("/orders/<int:order_id>")
def order_detail(order_id):
    return _found(order_service.get_order_details(order_id))


@admin_bp.route("/orders/<int:order_id>/status", methods=["POST"])
def order_status(order_id):
    order = _found(order_service.update_order_status(order_id, _payload().get("status")))
    return {"id": order.id, "status": order.status}


# ---------------------------------------------------------------------------
# Products, variants, images
# ---------------------------------------------------------------------------

@admin_bp.route("/products")
def products():
    page, limit = _page_args()
    return page_envelope(
        product_admin_service.get_admin_products(
            search=request.args.get("search", ""),
            brand_id=request.args.get("brand_id", type=int),
            category_id=request.args.get("category_id", type=int),
            gender_id=request.args.get("gender_id", type=int),
            published=_bool_arg("published"),
            page=page,
            limit=limit,
        )
    )


@admin_bp.route("/products/form-data")
def product_form_data():
    return product_admin_service.get_product_form_data()


@admin_bp.route("/products", methods=["POST"])
def product_create():
    product = product_admin_service.create_product(_payload())
    return product.to_dict(), 201


@admin_bp.route("/products/<int:product_id>")
def product_edit(product_id):
    return _found(product_admin_service.get_product_for_edit(product_id))


@admin_bp.route("/products/<int:product_id>", methods=["POST", "PATCH"])
def product_update(product_id):
    return _found(product_admin_service.update_product(product_id, _payload())).to_dict()


@admin_bp.route("/products/<int:product_id>", methods=["DELETE"])
def product_delete(product_id):
    return _deleted(product_admin_service.delete_product(product_id))


@admin_bp.route("/products/<int:product_id>/variants", methods=["POST"])
def variant_create(product_id):
    variant = _found(product_admin_service.add_variant(product_id, _payload()))
    return variant.to_dict(), 201


@admin_bp.route("/variants/<int:variant_id>", methods=["POST", "PATCH"])
def variant_update(variant_id):
    return _found(product_admin_service.update_variant(variant_id, _payload())).to_dict()


@admin_bp.route("/variants/<int:variant_id>", methods=["DELETE"])
def variant_delete(variant_id):
    return _deleted(product_admin_service.delete_variant(variant_id))


@admin_bp.route("/products/<int:product_id>/images", methods=["POST"])
def image_create(product_id):
    image = _found(product_admin_service.add_image(product_id, _payload()))
    return image.to_dict(), 201


@admin_bp.route("/images/<int:image_id>/primary", methods=["POST"])
def image_primary(image_id):
    return _found(product_admin_service.set_primary_image(image_id)).to_dict()


@admin_bp.route("/images/<int:image_id>", methods=["DELETE"])
def image_delete(image_id):
    return _deleted(product_admin_service.delete_image(image_id))


@admin_bp.route("/products/<int:product_id>/price-history")
def price_history(product_id):
    return {"items": price_history_service.get_price_history(product_id)}


@admin_bp.route("/price-history", methods=["POST"])
def price_history_create():
    entry = price_history_service.create_price_history(_payload())
    return {"id": entry.id, **entry.to_point()}, 201


@admin_bp.route("/price-history/<int:entry_id>", methods=["DELETE"])
def price_history_delete(entry_id):
    return _deleted(price_history_service.delete_price_history(entry_id))


# ---------------------------------------------------------------------------
# Brands, categories
# ---------------------------------------------------------------------------

@admin_bp.route("/brands")
def brands():
    page, limit = _page_args()
    return page_envelope(
        brand_service.get_admin_brands(
            search=request.args.get("search", ""), page=page, limit=limit
        )
    )


@admin_bp.route("/brands", methods=["POST"])
def brand_create():
    return brand_service.create_brand(_payload()).to_dict(), 201


@admin_bp.route("/brands/<int:brand_id>")
def brand_detail(brand_id):
    return _found(brand_service.get_brand(brand_id))


@admin_bp.route("/brands/<int:brand_id>", methods=["POST", "PATCH"])
def brand_update(brand_id):
    return _found(brand_service.update_brand(brand_id, _payload())).to_dict()


@admin_bp.route("/brands/<int:brand_id>", methods=["DELETE"])
def brand_delete(brand_id):
    return _deleted(brand_service.delete_brand(brand_id))


@admin_bp.route("/categories")
def categories():
    return {
        "items": category_service.get_admin_categories(
            search=request.args.get("search", ""),
            parent_id=_parent_arg(),
            hierarchical=_bool_arg("tree") is True,
        )
    }


@admin_bp.route("/categories", methods=["POST"])
def category_create():
    return category_service.create_category(_payload()).to_dict(), 201


@admin_bp.route("/categories/quick", methods=["POST"])
def category_quick_create():
    return category_service.quick_create_category(_payload().get("name")).to_dict(), 201


@admin_bp.route("/categories/<int:category_id>")
def category_detail(category_id):
    return _found(category_service.get_category(category_id))


@admin_bp.route("/categories/<int:category_id>", methods=["POST", "PATCH"])
def category_update(category_id):
    return _found(category_service.update_category(category_id, _payload())).to_dict()


@admin_bp.route("/categories/<int:category_id>", methods=["DELETE"])
def category_delete(category_id):
    return _deleted(category_service.delete_category(category_id))


# ---------------------------------------------------------------------------
# Reviews, videos
# ---------------------------------------------------------------------------

@admin_bp.route("/reviews")
def reviews():
    page, limit = _page_args()
    return page_envelope(
        review_service.get_admin_reviews(
            product_id=request.args.get("product_id", type=int),
            rating=request.args.get("rating", type=int),
            search=request.args.get("search", ""),
            page=page,
            limit=limit,
        )
    )


@admin_bp.route("/reviews", methods=["POST"])
def review_create():
    review = review_service.create_review(_payload())
    return {"id": review.id, "product_id": review.product_id, "rating": review.rating}, 201


@admin_bp.route("/reviews/<int:review_id>", methods=["DELETE"])
def review_delete(review_id):
    return _deleted(review_service.delete_review(review_id))


@admin_bp.route("/reviews/<int:review_id>/featured", methods=["POST", "DELETE"])
def review_featured(review_id):
    featured = review_service.set_featured_review(
        review_id, featured=request.method == "POST"
    )
    if request.method == "POST":
        return _found(featured).to_dict()
    return {"ok": True}


@admin_bp.route("/videos")
def videos():
    page, limit = _page_args()
    return page_envelope(
        video_service.get_admin_videos(
            search=request.args.get("search", ""),
            product_id=request.args.get("product_id", type=int),
            platform=request.args.get("platform"),
            page=page,
            limit=limit,
        )
    )


@admin_bp.route("/videos", methods=["POST"])
def video_create():
    return video_service.create_video(_payload()).to_dict(), 201


@admin_bp.route("/videos/<int:video_id>")
def video_detail(video_id):
    return _found(video_service.get_video(video_id))


@admin_bp.route("/videos/<int:video_id>", methods=["POST", "PATCH"])
def video_update(video_id):
    return _found(video_service.update_video(video_id, _payload())).to_dict()


@admin_bp.route("/videos/<int:video_id>", methods=["DELETE"])
def video_delete(video_id):
    return _deleted(video_service.delete_video(video_id))


# ---------------------------------------------------------------------------
# Blog, users
# ---------------------------------------------------------------------------

@admin_bp.route("/blog")
def blog_posts():
    page, limit = _page_args()
    return page_envelope(
        blog_service.get_admin_posts(
            search=request.args.get("search", ""),
            category=request.args.get("category"),
            published=_bool_arg("published"),
            sort=request.args.get("sort", "date_desc"),
            page=page,
            limit=limit,
        )
    )


@admin_bp.route("/blog", methods=["POST"])
def blog_create():
    return blog_service.create_post(_payload()).to_dict(), 201


@admin_bp.route("/blog/<int:post_id>")
def blog_detail(post_id):
    return _found(blog_service.get_post(post_id))


@admin_bp.route("/blog/<int:post_id>", methods=["POST", "PATCH"])
def blog_update(post_id):
    return _found(blog_service.update_post(post_id, _payload())).to_dict()


@admin_bp.route("/blog/<int:post_id>", methods=["DELETE"])
def blog_delete(post_id):
    return _deleted(blog_service.delete_post(post_id))


@admin_bp.route("/users/<int:user_id>/role", methods=["POST"])
def user_role(user_id):
    row = _found(set_user_role(user_id, _payload().get("role")))
    return {"user_id": row.user_id, "role": row.role}
