from __future__ import annotations

import json
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any


class EmailError(RuntimeError):
    pass


@dataclass(frozen=True)
class EmailJsClient:
    service_id: str
    template_id: str
    public_key: str
    base_url: str = "https://api.emailjs.com"
    timeout_seconds: int = 15

    @property
    def configured(self) -> bool:
        return bool(self.service_id and self.template_id and self.public_key)

    def send(self, template_params: dict[str, Any]) -> str:
        """Send one templated email. Returns the provider's response text ("OK")."""
        if not self.configured:
            raise EmailError("EmailJS is not configured")
        url = self.base_url.rstrip("/") + "/api/v1.0/email/send"
        body = json.dumps(
            {
                "service_id": self.service_id,
                "template_id": self.template_id,
                "user_id": self.public_key,
                "template_params": template_params,
            }
        ).encode("utf-8")
        req = urllib.request.Request(url, data=body, method="POST")
        req.add_header("Content-Type", "application/json")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_seconds) as resp:
                return resp.read().decode("utf-8", errors="ignore")
        except urllib.error.HTTPError as e:
            try:
                detail = e.read().decode("utf-8", errors="ignore")
            except Exception:
                detail = ""
            raise EmailError(f"HTTP {e.code} from EmailJS: {detail[:300]}") from e
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            raise EmailError(f"EmailJS request failed: {e}") from e


def client_from_config(config: dict) -> EmailJsClient:
    return EmailJsClient(
        service_id=(config.get("EMAILJS_SERVICE_ID") or "").strip(),
        template_id=(config.get("EMAILJS_TEMPLATE_ID") or "").strip(),
        public_key=(config.get("EMAILJS_PUBLIC_KEY") or "").strip(),
    )
