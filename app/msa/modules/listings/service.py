from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.msa.audit import record_event
from app.msa.constants import AVAILABILITY_STATUSES
from app.msa.utils import payload_text

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.msa.modules.listings.models import Property


class ListingNotFound(LookupError):
    pass


_EPC_RE = re.compile(r"^[A-G]$")


def _parse_int(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    s = str(value).strip().replace(",", "")
    if not s:
        return None
    return int(s)


def _parse_list(value: Any) -> list[str]:
    """Accept a list or a newline/comma separated string (form textarea)."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = re.split(r"[\n,]", str(value))
    return [str(i).strip() for i in items if str(i).strip()]


def validate_property_payload(payload: dict) -> list[str]:
    """Validate listing creation payload. Returns list of errors."""
    errors = []
    if not payload_text(payload, "title"):
        errors.append("Title is required.")
    if not payload_text(payload, "address"):
        errors.append("Address is required.")

    for field, label, minimum in (("rent", "Rent", 1), ("bedrooms", "Bedrooms", 0), ("bathrooms", "Bathrooms", 0), ("square_footage", "Square footage", 1)):
        try:
            value = _parse_int(payload.get(field))
        except ValueError:
            errors.append(f"{label} must be a whole number.")
            continue
        if value is None:
            if field == "rent":
                errors.append("Rent is required.")
            continue
        if value < minimum:
            errors.append(f"{label} must be at least {minimum}.")

    availability = payload_text(payload, "availability")
    if availability and availability not in AVAILABILITY_STATUSES:
        errors.append(f"Invalid availability. Must be one of: {', '.join(AVAILABILITY_STATUSES)}")

    epc = payload_text(payload, "epc_rating").upper()
    if epc and not _EPC_RE.match(epc):
        errors.append("EPC rating must be a letter A-G.")
    return errors


def list_properties(s: "Session", *, availability: str | None = None) -> list["Property"]:
    from app.msa.modules.listings.models import Property

    q = s.query(Property)
    if availability:
        q = q.filter(Property.availability == availability)
    return q.order_by(Property.created_at.desc(), Property.id.desc()).all()


def get_property(s: "Session", property_id: int) -> "Property | None":
    from app.msa.modules.listings.models import Property

    return s.get(Property, property_id)


def create_property(s: "Session", payload: dict, actor: str | None) -> "Property":
    """Create a listing. Call validate_property_payload first."""
    from app.msa.modules.listings.models import Property

    now = datetime.utcnow()
    prop = Property(
        title=payload_text(payload, "title"),
        address=payload_text(payload, "address"),
        rent=_parse_int(payload.get("rent")) or 0,
        bedrooms=_parse_int(payload.get("bedrooms")) or 0,
        bathrooms=_parse_int(payload.get("bathrooms")) if payload.get("bathrooms") not in (None, "") else 1,
        square_footage=_parse_int(payload.get("square_footage")),
        description=payload_text(payload, "description") or None,
        amenities=_parse_list(payload.get("amenities")),
        photos=_parse_list(payload.get("photos")),
        availability=payload_text(payload, "availability") or "available",
        epc_rating=payload_text(payload, "epc_rating").upper() or None,
        council_tax_band=payload_text(payload, "council_tax_band").upper() or None,
        created_at=now,
        updated_at=now,
    )
    s.add(prop)
    s.flush()

    record_event(
        s,
        actor=actor,
        action="property.create",
        entity_type="Property",
        entity_id=str(prop.id),
        metadata={"title": prop.title, "availability": prop.availability},
    )
    return prop


def set_availability(
    s: "Session", prop: "Property", availability: str, actor: str | None, reason: str | None = None
) -> "Property":
    if availability not in AVAILABILITY_STATUSES:
        raise ValueError(f"Invalid availability: {availability!r}")
    old = prop.availability
    if old == availability:
        return prop

    prop.availability = availability
    prop.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=actor,
        action="property.status_change",
        entity_type="Property",
        entity_id=str(prop.id),
        reason=reason,
        metadata={"from": old, "to": availability},
    )
    return prop


def toggle_sold(s: "Session", prop: "Property", actor: str | None) -> "Property":
    """Sold listings go back on the market; anything else is marked sold."""
    target = "available" if prop.availability == "sold" else "sold"
    return set_availability(s, prop, target, actor, reason="quick toggle")


def bulk_set_availability(
    s: "Session", property_ids: list[int], availability: str, actor: str | None
) -> list["Property"]:
    """All-or-nothing: raises ListingNotFound before changing anything if an id is unknown."""
    from app.msa.modules.listings.models import Property

    if availability not in AVAILABILITY_STATUSES:
        raise ValueError(f"Invalid availability: {availability!r}")
    ids = sorted(set(property_ids))
    if not ids:
        return []
    props = s.query(Property).filter(Property.id.in_(ids)).all()
    missing = set(ids) - {p.id for p in props}
    if missing:
        raise ListingNotFound(f"Unknown property ids: {', '.join(str(i) for i in sorted(missing))}")
    for prop in props:
        set_availability(s, prop, availability, actor, reason="bulk update")
    return props


def delete_property(s: "Session", prop: "Property", actor: str | None) -> None:
    record_event(
        s,
        actor=actor,
        action="property.delete",
        entity_type="Property",
        entity_id=str(prop.id),
        metadata={"title": prop.title},
    )
    s.delete(prop)


def property_statistics(s: "Session") -> dict[str, int]:
    props = list_properties(s)
    counts = {status: 0 for status in AVAILABILITY_STATUSES}
    for p in props:
        counts[p.availability] = counts.get(p.availability, 0) + 1
    return {
        "total_properties": len(props),
        "available_properties": counts["available"],
        "occupied_properties": counts["occupied"],
        "maintenance_properties": counts["maintenance"],
        "sold_properties": counts["sold"],
        "total_potential_revenue": sum(p.rent for p in props),
    }


def property_to_dict(p: "Property") -> dict[str, Any]:
    return {
        "id": p.id,
        "title": p.title,
        "address": p.address,
        "rent": p.rent,
        "bedrooms": p.bedrooms,
        "bathrooms": p.bathrooms,
        "square_footage": p.square_footage,
        "description": p.description,
        "amenities": list(p.amenities or []),
        "photos": list(p.photos or []),
        "availability": p.availability,
        "epc_rating": p.epc_rating,
        "council_tax_band": p.council_tax_band,
        "created_at": p.created_at.isoformat() if p.created_at else None,
        "updated_at": p.updated_at.isoformat() if p.updated_at else None,
    }
