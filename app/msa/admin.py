from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, flash, g, jsonify, redirect, render_template, request, url_for

from app.msa.admin_auth import admin_required, admin_sessions
from app.msa.audit import record_event
from app.msa.constants import ADMIN_SESSION_TTL, APPLICATION_STATUSES, AVAILABILITY_STATUSES
from app.msa.db import db_session
from app.msa.feature_flags import get_flags, is_feature_enabled
from app.msa.modules.applications.service import recent_applications
from app.msa.modules.listings.service import list_properties, property_statistics

bp = Blueprint("admin", __name__)

_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds
REJECTED_LOGIN_MESSAGE = "Invalid administrator credentials."


def _failed_attempts() -> dict[str, list[datetime]]:
    return current_app.extensions.setdefault("admin_login_attempts", defaultdict(list))


def _check_rate_limit(ip: str) -> bool:
    attempts = _failed_attempts()
    cutoff = datetime.utcnow() - timedelta(seconds=_LOGIN_RATE_WINDOW)
    attempts[ip] = [t for t in attempts[ip] if t > cutoff]
    return len(attempts[ip]) >= _LOGIN_RATE_LIMIT


def _safe_next(nxt: str) -> str | None:
    # Only allow local paths to avoid open redirects.
    if nxt.startswith("/") and not nxt.startswith("//"):
        return nxt
    return None


def _back_to_login(nxt: str):
    if nxt:
        return redirect(url_for("admin.login_get", next=nxt))
    return redirect(url_for("admin.login_get"))


@bp.get("/login")
def login_get():
    if getattr(g, "admin_session", None):
        return redirect(url_for("admin.index"))
    nxt = (request.args.get("next") or "").strip()
    return render_template("admin/login.html", next=nxt)


@bp.post("/login")
def login_post():
    username = (request.form.get("username") or "").strip()
    password = request.form.get("password") or ""
    nxt = (request.form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        flash("Too many login attempts. Please wait 5 minutes.", "danger")
        return redirect(url_for("admin.login_get"))

    if not username or not password:
        flash("Please enter both username and password.", "danger")
        return _back_to_login(nxt)

    s = db_session()
    if not admin_sessions().authenticate(username, password):
        _failed_attempts()[ip].append(datetime.utcnow())
        record_event(
            s,
            actor=None,
            action="admin.login_failed",
            entity_type="AdminSession",
            entity_id=username[:128],
            reason="Invalid credentials",
        )
        s.commit()
        current_app.logger.warning("Admin login rejected (ip=%s request_id=%s)", ip, g.request_id)
        flash(REJECTED_LOGIN_MESSAGE, "danger")
        return _back_to_login(nxt)

    _failed_attempts().pop(ip, None)
    record_event(s, actor=username, action="admin.login", entity_type="AdminSession", entity_id=username)
    s.commit()
    current_app.logger.info("Admin %s logged in", username)
    flash("Welcome back.", "success")
    return redirect(_safe_next(nxt) or url_for("admin.index"))


@bp.get("/logout")
def logout():
    admin_session = getattr(g, "admin_session", None)
    admin_sessions().logout()
    if admin_session:
        s = db_session()
        record_event(
            s,
            actor=admin_session.username,
            action="admin.logout",
            entity_type="AdminSession",
            entity_id=admin_session.username,
        )
        s.commit()
        flash("You have been logged out of the admin panel.", "info")
    return redirect(url_for("admin.login_get"))


@bp.get("/")
@admin_required
def index():
    s = db_session()
    stats = property_statistics(s) if is_feature_enabled("property_analytics") else None
    new_applications = recent_applications(s, status="submitted") if is_feature_enabled("admin_notifications") else []
    return render_template(
        "admin/index.html",
        properties=list_properties(s),
        stats=stats,
        new_applications=new_applications,
        availability_statuses=AVAILABILITY_STATUSES,
        application_statuses=APPLICATION_STATUSES,
        admin_username=g.admin_session.username,
    )


@bp.get("/session")
def session_status():
    """Polled by the dashboard to notice expiry without a full page load."""
    admin_session = admin_sessions().get_session()
    if admin_session is None:
        return jsonify({"authenticated": False})
    return jsonify(
        {
            "authenticated": True,
            "username": admin_session.username,
            "issued_at": admin_session.issued_at.isoformat(),
            "expires_at": (admin_session.issued_at + ADMIN_SESSION_TTL).isoformat(),
        }
    )


@bp.get("/flags")
@admin_required
def flags():
    return jsonify({"flags": dict(get_flags())})
