from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.request
import uuid
from dataclasses import dataclass

from django.conf import settings
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    pass


@dataclass(frozen=True)
class GatewayResult:
    delivery_id: str


class AiSensyGateway:
    """
    AiSensy campaign API. A send is successful only on a 2xx response whose
    body contains "Success"; everything else raises GatewayError.
    """

    def __init__(self, *, api_url: str | None = None, api_key: str | None = None, timeout: float | None = None):
        self.api_url = api_url if api_url is not None else getattr(settings, "AISENSY_API_URL", "")
        self.api_key = api_key if api_key is not None else getattr(settings, "AISENSY_API_KEY", "")
        self.timeout = timeout if timeout is not None else float(getattr(settings, "WHATSAPP_GATEWAY_TIMEOUT", 10))

    def send_template_message(self, *, destination: str, campaign_name: str, params: list[str], user_name: str) -> GatewayResult:
        if not self.api_url or not self.api_key:
            raise GatewayError("WhatsApp gateway not configured")

        payload = {
            "apiKey": self.api_key,
            "campaignName": campaign_name,
            "destination": destination,
            "userName": user_name,
            "source": user_name,
            "templateParams": list(params),
            "media": {},
            "buttons": [],
            "carouselCards": [],
            "location": {},
        }
        req = urllib.request.Request(
            self.api_url,
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                status = int(getattr(resp, "status", 200))
                body = resp.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            raise GatewayError(f"HTTP {e.code}") from e
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            raise GatewayError(f"Network error: {e}") from e
        except http.client.HTTPException as e:
            raise GatewayError(f"Bad response: {type(e).__name__}") from e

        if not (200 <= status < 300) or "Success" not in body:
            raise GatewayError(body[:500] or f"HTTP {status}")

        delivery_id = ""
        try:
            parsed = json.loads(body)
            if isinstance(parsed, dict):
                delivery_id = str(parsed.get("submitted_message_id") or parsed.get("id") or "")
        except ValueError:
            pass  # plain-text "Success." body
        return GatewayResult(delivery_id=delivery_id or uuid.uuid4().hex)


def get_gateway():
    cls = import_string(getattr(settings, "WHATSAPP_GATEWAY_CLASS", "core.whatsapp.gateway.AiSensyGateway"))
    return cls()
