from __future__ import annotations

import logging
import urllib.parse
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.msa.modules.notifications.emailjs_client import EmailError, client_from_config
from app.msa.utils import payload_text

if TYPE_CHECKING:
    from app.msa.modules.applications.models import Application

logger = logging.getLogger(__name__)

SITE_SENDER_NAME = "MSA Properties Website"
SITE_SENDER_EMAIL = "noreply@msa-properties.co.uk"


@dataclass(frozen=True)
class EmailResult:
    success: bool
    error: str | None = None
    fallback_reason: str | None = None  # missing_config, send_failed
    mailto_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def build_mailto(to: str, subject: str, body: str) -> str:
    query = urllib.parse.urlencode({"subject": subject, "body": body}, quote_via=urllib.parse.quote)
    return f"mailto:{to}?{query}"


def _dispatch(config: dict, template_params: dict[str, Any]) -> EmailResult:
    to = (config.get("ADMIN_NOTIFY_EMAIL") or "").strip()
    mailto = build_mailto(to, template_params["subject"], template_params["message"])
    client = client_from_config(config)
    if not client.configured or not to:
        logger.warning("Email not configured; using mailto fallback (subject=%s)", template_params["subject"])
        return EmailResult(
            success=False,
            error="Email dispatch not configured",
            fallback_reason="missing_config",
            mailto_url=mailto,
        )
    try:
        client.send({**template_params, "to_email": to})
    except EmailError as e:
        logger.error("Email send failed (subject=%s): %s", template_params["subject"], e)
        return EmailResult(success=False, error=str(e), fallback_reason="send_failed", mailto_url=mailto)
    logger.info("Email sent to admin (subject=%s)", template_params["subject"])
    return EmailResult(success=True)


def _submission_date() -> str:
    return datetime.now().strftime("%d/%m/%Y, %H:%M:%S")


def send_application_email(config: dict, application: "Application") -> EmailResult:
    prop = application.property
    subject = f"New Property Application: {prop.title}"
    message = "\n".join(
        [
            "NEW PROPERTY APPLICATION RECEIVED",
            "",
            "Property Details:",
            f"- Title: {prop.title}",
            f"- Address: {prop.address}",
            f"- Rent: £{prop.rent}/month",
            "",
            "Applicant Information:",
            f"- Name: {application.applicant_name}",
            f"- Email: {application.applicant_email}",
            f"- Phone: {application.applicant_phone or 'Not provided'}",
            "",
            "Application Details:",
            f"- Application ID: {application.id}",
            f"- Property ID: {prop.id}",
            f"- Submission Date: {_submission_date()}",
        ]
    )
    if application.message:
        message += f"\n\nMessage:\n{application.message}"
    return _dispatch(
        config,
        {
            "from_name": SITE_SENDER_NAME,
            "from_email": SITE_SENDER_EMAIL,
            "reply_to": application.applicant_email,
            "subject": subject,
            "message": message,
            "source": "Property Application",
        },
    )


def send_contact_email(config: dict, form: dict[str, str]) -> EmailResult:
    return _dispatch(
        config,
        {
            "from_name": form["name"],
            "from_email": form["email"],
            "reply_to": form["email"],
            "subject": form.get("subject") or "Website enquiry",
            "message": form["message"],
            "phone": form.get("phone") or "Not provided",
            "source": form.get("source") or "Contact Form",
            "submission_date": _submission_date(),
        },
    )


def validate_contact_payload(payload: dict) -> list[str]:
    errors = []
    if not payload_text(payload, "name"):
        errors.append("Name is required.")
    email = payload_text(payload, "email")
    if not email or "@" not in email:
        errors.append("A valid email address is required.")
    if not payload_text(payload, "message"):
        errors.append("Message is required.")
    return errors
