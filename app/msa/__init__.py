import logging
import uuid

from dotenv import load_dotenv
from flask import Flask, g, jsonify, render_template, request, session

from app.msa.admin import bp as admin_bp
from app.msa.admin_auth import init_admin_auth, load_admin_session
from app.msa.config import DEFAULT_SECRET_KEY, load_config
from app.msa.constants import ADMIN_SESSION_TTL
from app.msa.db import init_db, teardown_db_session
from app.msa.feature_flags import init_feature_flags
from app.msa.modules.applications.admin import bp as applications_admin_bp
from app.msa.modules.applications.public import bp as applications_bp
from app.msa.modules.listings.admin import bp as listings_admin_bp
from app.msa.modules.listings.feed import init_listing_feed
from app.msa.modules.listings.public import bp as listings_bp
from app.msa.routes import bp as routes_bp

_UNGUARDED_PREFIXES = ("/static/", "/health", "/healthz")


def _wants_json() -> bool:
    return request.is_json or request.path.startswith("/api/") or request.accept_mimetypes.best == "application/json"


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    # The admin record carries its own 24h expiry; the cookie just has to outlive it.
    app.config["PERMANENT_SESSION_LIFETIME"] = ADMIN_SESSION_TTL
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    from app.msa.security import ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_csrf() -> dict:
        return {"csrf_token": ensure_csrf_token()}

    @app.template_filter("gbp")
    def _gbp_filter(value) -> str:
        if value is None:
            return "POA"
        return f"£{int(value):,}"

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", DEFAULT_SECRET_KEY):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
        if app.config.get("ADMIN_PASSWORD_IS_DEFAULT"):
            raise RuntimeError("Set ADMIN_PASSWORD_HASH (or ADMIN_PASSWORD) in production; the default is not allowed.")

    init_db(app)
    init_admin_auth(app)
    init_feature_flags(app)
    init_listing_feed(app)

    @app.before_request
    def _assign_request_id():
        g.request_id = uuid.uuid4().hex

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_UNGUARDED_PREFIXES):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE") and not validate_csrf(request):
            app.logger.warning("CSRF check failed for %s (request_id=%s)", request.path, g.request_id)
            if _wants_json():
                return jsonify({"ok": False, "errors": ["CSRF token missing or invalid."]}), 400
            return render_template("errors/400.html", message="CSRF token missing or invalid."), 400
        return None

    app.before_request(load_admin_session)
    app.teardown_appcontext(teardown_db_session)

    app.register_blueprint(routes_bp)
    app.register_blueprint(listings_bp)
    app.register_blueprint(applications_bp)
    app.register_blueprint(admin_bp, url_prefix="/admin")
    app.register_blueprint(listings_admin_bp, url_prefix="/admin")
    app.register_blueprint(applications_admin_bp, url_prefix="/admin")

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        if _wants_json():
            return jsonify({"error": "Not found"}), 404
        return render_template("errors/404.html"), 404

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        if _wants_json():
            return jsonify({"error": "Internal server error"}), 500
        return render_template("errors/500.html"), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve (env=%s)", env or "unset")

    return app
