from flask import Blueprint, abort, jsonify, request

from app.msa.constants import AVAILABILITY_STATUSES
from app.msa.db import db_session
from app.msa.feature_flags import is_feature_enabled
from app.msa.modules.listings.service import get_property, list_properties, property_to_dict

bp = Blueprint("listings", __name__)


@bp.get("/api/properties")
def properties_list():
    s = db_session()
    availability = None
    # Filtering is an opt-in feature; without it every listing is returned.
    if is_feature_enabled("advanced_property_filters"):
        availability = (request.args.get("availability") or "").strip() or None
        if availability and availability not in AVAILABILITY_STATUSES:
            return jsonify({"error": f"Unknown availability {availability!r}"}), 400
    props = list_properties(s, availability=availability)
    return jsonify({"properties": [property_to_dict(p) for p in props], "count": len(props)})


@bp.get("/api/properties/<int:property_id>")
def property_detail(property_id: int):
    prop = get_property(db_session(), property_id)
    if not prop:
        abort(404)
    return jsonify(property_to_dict(prop))
