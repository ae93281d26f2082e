from flask import Blueprint

public_bp = Blueprint(
    "public",
    __name__,
    template_folder="../../templates",
    static_folder="../../static",
)

from storefront.blueprints.public import views, cart  # noqa: F401, E402
