from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.msa.audit import record_event
from app.msa.constants import APPLICATION_STATUSES
from app.msa.utils import payload_text

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.msa.modules.applications.models import Application
    from app.msa.modules.listings.models import Property


def validate_application_payload(payload: dict) -> list[str]:
    """Validate an applicant's enquiry. Returns list of errors."""
    errors = []
    if not payload_text(payload, "name"):
        errors.append("Name is required.")
    email = payload_text(payload, "email")
    if not email or "@" not in email:
        errors.append("A valid email address is required.")
    phone = payload_text(payload, "phone")
    if phone and len(phone) > 64:
        errors.append("Phone number is too long.")
    return errors


def submit_application(s: "Session", prop: "Property", payload: dict) -> "Application":
    """Record an application for a listing. Only available listings accept applications."""
    from app.msa.modules.applications.models import Application

    if prop.availability != "available":
        raise ValueError(f"Property {prop.id} is not available ({prop.availability}).")

    now = datetime.utcnow()
    application = Application(
        property_id=prop.id,
        applicant_name=payload_text(payload, "name"),
        applicant_email=payload_text(payload, "email").lower(),
        applicant_phone=payload_text(payload, "phone") or None,
        message=payload_text(payload, "message") or None,
        status="submitted",
        created_at=now,
        updated_at=now,
    )
    application.property = prop
    s.add(application)
    s.flush()

    record_event(
        s,
        actor=None,
        action="application.submit",
        entity_type="Application",
        entity_id=str(application.id),
        metadata={"property_id": prop.id, "email": application.applicant_email},
    )
    return application


def set_application_status(
    s: "Session", application: "Application", status: str, actor: str | None, reason: str | None = None
) -> "Application":
    if status not in APPLICATION_STATUSES:
        raise ValueError(f"Invalid status. Must be one of: {', '.join(APPLICATION_STATUSES)}")
    old = application.status
    if old == status:
        return application
    application.status = status
    application.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=actor,
        action="application.status_change",
        entity_type="Application",
        entity_id=str(application.id),
        reason=reason,
        metadata={"from": old, "to": status},
    )
    return application


def recent_applications(s: "Session", *, status: str | None = None, limit: int = 20) -> list["Application"]:
    from app.msa.modules.applications.models import Application

    q = s.query(Application)
    if status:
        q = q.filter(Application.status == status)
    return q.order_by(Application.created_at.desc(), Application.id.desc()).limit(limit).all()


def application_to_dict(a: "Application") -> dict[str, Any]:
    return {
        "id": a.id,
        "property_id": a.property_id,
        "applicant_name": a.applicant_name,
        "applicant_email": a.applicant_email,
        "applicant_phone": a.applicant_phone,
        "status": a.status,
        "notification_sent": a.notification_sent,
        "created_at": a.created_at.isoformat() if a.created_at else None,
    }
