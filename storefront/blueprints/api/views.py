"""JSON endpoints: media upload and the catalog feeds behind the search bar."""
from flask import current_app, request
from storefront.auth import require_editor
from storefront.blueprints.api import api_bp
from storefront.blueprints.envelope import page_envelope
from storefront.services import catalog_service, upload_service
from storefront.services.filters import parse_product_filters


@api_bp.route("/upload", methods=["POST"])
def upload():
    """Store an image or video for the back-office. Editors and admins only."""
    require_editor()
    result = upload_service.store_upload(request.files.get("file"), request.form.get("type"))
    return result


@api_bp.route("/products")
def products():
    filters = parse_product_filters(
        request.args, default_limit=current_app.config["CATALOG_PAGE_SIZE"]
    )
    return page_envelope(catalog_service.get_all_products(**filters))


@api_bp.route("/search")
def search():
    query = request.args.get("q", "")
    return {
        "products": catalog_service.search_products(query),
        "brands": catalog_service.search_brands(query),
    }


@api_bp.route("/products/<int:product_id>/price-history")
def price_history(product_id):
    months = request.args.get("months", type=int)
    return {"points": catalog_service.get_product_price_history(product_id, months=months)}
