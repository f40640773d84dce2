from flask import Blueprint, abort, current_app, jsonify, request

from app.msa.db import db_session
from app.msa.modules.applications.service import submit_application, validate_application_payload
from app.msa.modules.listings.service import get_property
from app.msa.modules.notifications.service import send_application_email

bp = Blueprint("applications", __name__)


def _payload() -> dict:
    if request.is_json:
        data = request.get_json(silent=True) or {}
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


@bp.post("/apply/<int:property_id>")
def apply_post(property_id: int):
    s = db_session()
    prop = get_property(s, property_id)
    if not prop:
        abort(404)

    payload = _payload()
    errors = validate_application_payload(payload)
    if errors:
        return jsonify({"ok": False, "errors": errors}), 400

    try:
        application = submit_application(s, prop, payload)
    except ValueError as e:
        s.rollback()
        return jsonify({"ok": False, "errors": [str(e)]}), 409
    s.commit()

    # The application is kept even when the email cannot be sent;
    # the visitor gets a mailto link to notify the office directly.
    result = send_application_email(current_app.config, application)
    if result.success:
        application.notification_sent = True
        s.commit()

    current_app.logger.info(
        "Application %s for property %s (email_sent=%s)", application.id, prop.id, result.success
    )
    return jsonify({"ok": True, "application_id": application.id, "email": result.to_dict()}), 201
