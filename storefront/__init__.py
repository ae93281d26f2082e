import os
from urllib.parse import quote
from flask import Flask, redirect, render_template, request
from dotenv import load_dotenv

load_dotenv()


def create_app(config_name=None):
    flask_app = Flask(__name__)

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV")
        if not config_name:
            # Default to production on managed platforms to avoid accidental
            # debug mode/weak defaults when env selection is omitted.
            if os.environ.get("RAILWAY_ENVIRONMENT") or os.environ.get("PORT"):
                config_name = "production"
            else:
                config_name = "development"

    from storefront.config import config_map

    config_cls = config_map.get(config_name, config_map["development"])
    flask_app.config.from_object(config_cls)

    if hasattr(config_cls, "init_app"):
        config_cls.init_app(flask_app)

    # Initialize extensions
    from storefront.extensions import db, migrate, init_redis

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    init_redis(flask_app)

    # Import models so Alembic sees them
    import storefront.models  # noqa: F401

    # Register blueprints
    from storefront.blueprints.public import public_bp
    from storefront.blueprints.admin import admin_bp
    from storefront.blueprints.api import api_bp

    flask_app.register_blueprint(public_bp)
    flask_app.register_blueprint(admin_bp, url_prefix="/admin")
    flask_app.register_blueprint(api_bp, url_prefix="/api")

    _register_error_handlers(flask_app)

    # Register CLI commands
    from storefront.cli import register_cli

    register_cli(flask_app)

    # Serve static files efficiently in production with WhiteNoise
    if not flask_app.debug and not flask_app.testing:
        from whitenoise import WhiteNoise

        flask_app.wsgi_app = WhiteNoise(
            flask_app.wsgi_app,
            root=os.path.join(flask_app.static_folder),
            prefix="static/",
            max_age=31536000,  # 1 year cache for hashed assets
        )

    # Health check
    @flask_app.route("/health")
    def health():
        from storefront import extensions

        checks = {"status": "ok"}
        try:
            db.session.execute(db.text("SELECT 1"))
            checks["db"] = "ok"
        except Exception:
            flask_app.logger.exception("Health check DB query failed")
            checks["db"] = "error"
            checks["status"] = "degraded"
        try:
            if extensions.redis_client:
                extensions.redis_client.ping()
                checks["redis"] = "ok"
            else:
                checks["redis"] = "not configured"
        except Exception:
            flask_app.logger.exception("Health check Redis ping failed")
            checks["redis"] = "error"
            checks["status"] = "degraded"
        status_code = 200 if checks["status"] == "ok" else 503
        return checks, status_code

    return flask_app


def _wants_json():
    return request.path.startswith(("/api/", "/admin/", "/cart", "/checkout"))


def _register_error_handlers(flask_app):
    from pydantic import ValidationError
    from storefront.auth import AuthorizationError, Unauthenticated
    from storefront.extensions import db
    from storefront.services.errors import ActionError

    @flask_app.errorhandler(AuthorizationError)
    def handle_authorization_error(e):
        if request.blueprint == "api" or request.path.startswith(("/cart", "/checkout")):
            return {"error": "Unauthorized"}, 401
        if isinstance(e, Unauthenticated):
            target = request.full_path.rstrip("?")
            sign_in = flask_app.config["SIGN_IN_URL"]
            return redirect(f"{sign_in}?redirect={quote(target)}")
        return redirect("/")

    @flask_app.errorhandler(ValidationError)
    def handle_validation_error(e):
        db.session.rollback()
        return {
            "error": "Validation failed",
            "details": e.errors(include_url=False, include_context=False, include_input=False),
        }, 400

    @flask_app.errorhandler(ActionError)
    def handle_action_error(e):
        db.session.rollback()
        return {"error": str(e)}, 400

    @flask_app.errorhandler(404)
    def handle_not_found(e):
        if _wants_json():
            return {"error": "Not found"}, 404
        return render_template("404.html"), 404

    @flask_app.errorhandler(500)
    def handle_server_error(e):
        flask_app.logger.exception("Unhandled error on %s", request.path)
        db.session.rollback()
        if _wants_json():
            return {"error": "Internal server error"}, 500
        return render_template("500.html"), 500
