from __future__ import annotations

from flask import Blueprint, abort, current_app, flash, g, redirect, request, url_for

from app.msa.admin_auth import admin_required
from app.msa.db import db_session
from app.msa.feature_flags import require_feature
from app.msa.modules.listings.feed import listing_feed
from app.msa.modules.listings.service import (
    ListingNotFound,
    bulk_set_availability,
    create_property,
    delete_property,
    get_property,
    set_availability,
    toggle_sold,
    validate_property_payload,
)

bp = Blueprint("listings_admin", __name__)

PROPERTY_FORM_FIELDS = (
    "title",
    "address",
    "rent",
    "bedrooms",
    "bathrooms",
    "square_footage",
    "description",
    "amenities",
    "photos",
    "availability",
    "epc_rating",
    "council_tax_band",
)


def _actor() -> str:
    admin_session = getattr(g, "admin_session", None)
    if not admin_session:
        raise RuntimeError("No admin session")
    return admin_session.username


def _back_to_dashboard():
    return redirect(url_for("admin.index"))


@bp.post("/properties/new")
@admin_required
def properties_new_post():
    s = db_session()
    payload = {k: request.form.get(k) for k in PROPERTY_FORM_FIELDS}

    errors = validate_property_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return _back_to_dashboard()

    prop = create_property(s, payload, _actor())
    s.commit()
    listing_feed().publish()

    flash(f'Listing "{prop.title}" created.', "success")
    return _back_to_dashboard()


@bp.post("/properties/<int:property_id>/status")
@admin_required
def property_status_post(property_id: int):
    s = db_session()
    prop = get_property(s, property_id)
    if not prop:
        abort(404)

    availability = (request.form.get("availability") or "").strip()
    reason = (request.form.get("reason") or "").strip() or None
    try:
        set_availability(s, prop, availability, _actor(), reason=reason)
    except ValueError as e:
        flash(str(e), "danger")
        return _back_to_dashboard()
    s.commit()
    listing_feed().publish()

    flash(f'"{prop.title}" is now {prop.availability}.', "success")
    return _back_to_dashboard()


@bp.post("/properties/<int:property_id>/toggle-sold")
@admin_required
@require_feature("quick_toggle_sold")
def property_toggle_sold(property_id: int):
    s = db_session()
    prop = get_property(s, property_id)
    if not prop:
        abort(404)

    toggle_sold(s, prop, _actor())
    s.commit()
    listing_feed().publish()

    flash(f'"{prop.title}" marked {prop.availability}.', "success")
    return _back_to_dashboard()


@bp.post("/properties/bulk-status")
@admin_required
@require_feature("bulk_property_actions")
def properties_bulk_status():
    s = db_session()
    availability = (request.form.get("availability") or "").strip()
    try:
        ids = [int(v) for v in request.form.getlist("property_ids")]
    except ValueError:
        flash("Invalid property selection.", "danger")
        return _back_to_dashboard()

    try:
        props = bulk_set_availability(s, ids, availability, _actor())
    except (ValueError, ListingNotFound) as e:
        s.rollback()
        flash(str(e), "danger")
        return _back_to_dashboard()
    s.commit()
    listing_feed().publish()

    current_app.logger.info("Bulk availability=%s for %s listings by %s", availability, len(props), _actor())
    flash(f"Updated {len(props)} listing(s).", "success")
    return _back_to_dashboard()


@bp.post("/properties/<int:property_id>/delete")
@admin_required
def property_delete(property_id: int):
    s = db_session()
    prop = get_property(s, property_id)
    if not prop:
        abort(404)

    title = prop.title
    delete_property(s, prop, _actor())
    s.commit()
    listing_feed().publish()

    flash(f'Listing "{title}" deleted.', "success")
    return _back_to_dashboard()
