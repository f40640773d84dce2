from __future__ import annotations

from typing import Any


def payload_text(payload: dict[str, Any], name: str) -> str:
    """Stripped text for a form/JSON field; missing or null becomes "", other scalars are stringified."""
    value = payload.get(name)
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        return ""
    return str(value).strip()
