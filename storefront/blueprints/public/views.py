"""Public-facing catalog, product, blog and order pages."""
from flask import (
    Response,
    abort,
    current_app,
    render_template,
    request,
    send_from_directory,
)
from storefront.auth import Forbidden, has_permission, require_auth
from storefront.blueprints.public import public_bp
from storefront.services import blog_service, catalog_service, order_service
from storefront.services.cache_service import cached_page
from storefront.services.filters import parse_page_args, parse_product_filters


@public_bp.route("/")
@cached_page
def home():
    """Home page: newest products and latest posts."""
    products = catalog_service.get_all_products(sort="newest", page=1, limit=8)
    posts = blog_service.get_published_posts(page=1, limit=3)
    return render_template("home.html", products=products.items, posts=posts.items)


@public_bp.route("/products")
@cached_page
def catalog():
    """Catalog page with filters."""
    filters = parse_product_filters(
        request.args, default_limit=current_app.config["CATALOG_PAGE_SIZE"]
    )
    pagination = catalog_service.get_all_products(**filters)

    return render_template(
        "catalog.html",
        products=pagination.items,
        pagination=pagination,
        filters=filters,
        brands=catalog_service.get_all_brands(),
        categories=catalog_service.get_all_categories(filters["gender_slugs"]),
    )


@public_bp.route("/products/<int:product_id>")
@cached_page
def product_detail(product_id):
    """Product detail page."""
    data = catalog_service.get_product(product_id)
    if not data or not data["product"]["is_published"]:
        abort(404)

    return render_template(
        "product.html",
        product=data["product"],
        variants=data["variants"],
        images=data["images"],
        rating=catalog_service.get_product_rating(product_id),
        reviews=catalog_service.get_product_reviews(product_id),
        featured_reviews=catalog_service.get_featured_reviews(product_id),
        price_history=catalog_service.get_product_price_history(product_id, months=12),
        tiktok_videos=catalog_service.get_product_videos(product_id, "tiktok"),
        youtube_videos=catalog_service.get_product_videos(product_id, "youtube"),
        recommended=catalog_service.get_recommended_products(product_id),
    )


@public_bp.route("/blog")
@cached_page
def blog_list():
    page, limit = parse_page_args(request.args, default_limit=12)
    pagination = blog_service.get_published_posts(
        category=request.args.get("category"), page=page, limit=limit
    )
    return render_template("blog_list.html", posts=pagination.items, pagination=pagination)


@public_bp.route("/blog/<slug>")
@cached_page
def blog_post(slug):
    post = blog_service.get_published_post(slug)
    if not post:
        abort(404)
    return render_template("blog_post.html", post=post)


@public_bp.route("/orders/<int:order_id>")
def order_detail(order_id):
    """Order confirmation page, visible to its owner and to editors."""
    user = require_auth()
    order = order_service.get_order(order_id)
    if not order:
        abort(404)
    if order["user_id"] != user.id and not has_permission(user.id, "editor"):
        raise Forbidden("Not your order")
    return render_template("order.html", order=order)


@public_bp.route("/robots.txt")
def robots():
    base = current_app.config["APP_URL"].rstrip("/")
    lines = [
        "User-agent: *",
        "Allow: /",
        "Disallow: /api/",
        "Disallow: /admin/",
        "Disallow: /checkout/",
        "",
        f"Sitemap: {base}/sitemap.xml",
    ]
    return Response("\n".join(lines) + "\n", mimetype="text/plain")


@public_bp.route("/sitemap.xml")
def sitemap():
    base = current_app.config["APP_URL"].rstrip("/")
    posts = [
        {
            "loc": f"{base}/blog/{slug}",
            "lastmod": (updated_at or date).date().isoformat() if (updated_at or date) else None,
        }
        for slug, updated_at, date in blog_service.get_sitemap_posts()
    ]
    xml = render_template("sitemap.xml", base=base, posts=posts)
    return Response(xml, mimetype="application/xml")


@public_bp.route("/uploads/<path:filename>")
def uploaded_file(filename):
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)

