from flask import Blueprint, abort, flash, g, redirect, request, url_for

from app.msa.admin_auth import admin_required
from app.msa.db import db_session
from app.msa.modules.applications.models import Application
from app.msa.modules.applications.service import set_application_status

bp = Blueprint("applications_admin", __name__)


@bp.post("/applications/<int:application_id>/status")
@admin_required
def application_status_post(application_id: int):
    s = db_session()
    application = s.get(Application, application_id)
    if not application:
        abort(404)

    status = (request.form.get("status") or "").strip()
    reason = (request.form.get("reason") or "").strip() or None
    try:
        set_application_status(s, application, status, g.admin_session.username, reason=reason)
    except ValueError as e:
        flash(str(e), "danger")
        return redirect(url_for("admin.index"))
    s.commit()

    flash(f"Application #{application.id} is now {application.status.replace('_', ' ')}.", "success")
    return redirect(url_for("admin.index"))
