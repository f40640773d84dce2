from flask import Blueprint, current_app, jsonify, render_template, request

from app.msa.db import db_session
from app.msa.modules.listings.service import list_properties
from app.msa.modules.notifications.service import send_contact_email, validate_contact_payload
from app.msa.utils import payload_text

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    properties = list_properties(db_session(), availability="available")
    return render_template("public/index.html", properties=properties)


@bp.post("/contact")
def contact_post():
    payload = request.get_json(silent=True) if request.is_json else request.form.to_dict()
    if not isinstance(payload, dict):
        payload = {}
    errors = validate_contact_payload(payload)
    if errors:
        return jsonify({"ok": False, "errors": errors}), 400

    form = {k: payload_text(payload, k) for k in ("name", "email", "subject", "message", "phone", "source")}
    result = send_contact_email(current_app.config, form)
    return jsonify({"ok": True, "email": result.to_dict()})


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast liveness check for the container platform. No DB access, minimal overhead.
    """
    return "ok", 200
