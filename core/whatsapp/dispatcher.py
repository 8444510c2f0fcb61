from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from django.conf import settings
from django.utils import timezone

from core.common import errors
from core.leads.activities import record_activity
from core.leads.domain_events import publish, whatsapp_dispatched
from core.leads.models import Activity, Lead
from core.whatsapp.gateway import GatewayError, get_gateway
from core.whatsapp.models import WhatsAppTrigger

logger = logging.getLogger(__name__)

# placeholder name -> lead attribute
PLACEHOLDER_FIELDS = {
    "FirstName": "first_name",
    "LastName": "last_name",
    "FullName": "full_name",
    "Phone": "phone",
    "Email": "email",
    "Source": "source",
    "Status": "status",
    "CourseInterested": "course_interested",
    "City": "city",
    "State": "state",
    "Country": "country",
    "Campaign": "campaign",
    "Amount": "revenue",
}


@dataclass(frozen=True)
class DispatchOutcome:
    trigger_id: object
    ok: bool
    params: list[str]
    destination: str
    delivery_id: str = ""
    error: str = ""


def placeholder_name(raw) -> str:
    return re.sub(r"[{}]", "", str(raw or "")).strip()


def _lead_value(lead: Lead, name: str) -> str:
    attr = PLACEHOLDER_FIELDS.get(name)
    if attr is not None:
        value = getattr(lead, attr, None)
    else:
        value = (lead.custom_fields or {}).get(name)

    if value is None:
        return ""
    if attr == "revenue" and not value:
        # zero revenue counts as absent
        return ""
    return str(value).strip()


def resolve_template_params(lead: Lead, placeholders: list, fallbacks: dict) -> list[str]:
    """
    Lead value, else fallback entry, else today's date for "Date",
    else "". Order follows `placeholders`.
    """
    fallbacks = fallbacks or {}
    out = []
    for raw in placeholders or []:
        name = placeholder_name(raw)
        value = _lead_value(lead, name)
        if not value:
            value = str(fallbacks.get(name) or "")
        if not value and name == "Date":
            value = timezone.localdate().strftime("%d/%m/%Y")
        out.append(value)
    return out


def destination_for(phone: str) -> str:
    """Gateway destination: 10-digit numbers get the 91 country code."""
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) == 10:
        return "91" + digits
    return digits


def dispatch_status_change(*, lead: Lead, old_status: str, new_status: str, actor_user_id=None, gateway=None) -> DispatchOutcome | None:
    """
    Fire the (workspace, new_status) trigger, if any and enabled.

    Blocks on the gateway call. Failures are recorded as a WHATSAPP activity
    and logged; they never propagate to the status write that caused them.
    """
    if old_status == new_status:
        return None

    trigger = WhatsAppTrigger.objects.filter(workspace_id=lead.workspace_id, status=new_status).first()
    if trigger is None or not trigger.is_enabled:
        return None

    params = resolve_template_params(lead, trigger.template_params, trigger.params_fallback)
    destination = destination_for(lead.phone)
    user_name = trigger.source or getattr(settings, "WHATSAPP_DEFAULT_SOURCE", "LeadCRM")

    failure = None
    try:
        if not destination:
            raise GatewayError("Lead has no usable phone number")
        result = (gateway or get_gateway()).send_template_message(
            destination=destination,
            campaign_name=trigger.campaign_name,
            params=params,
            user_name=user_name,
        )
        outcome = DispatchOutcome(trigger_id=trigger.id, ok=True, params=params, destination=destination, delivery_id=result.delivery_id)
    except GatewayError as e:
        failure = errors.DispatchFailure(str(e), details={"trigger_id": str(trigger.id), "campaign": trigger.campaign_name})
        logger.error("whatsapp dispatch failed lead=%s status=%s: %s", lead.id, new_status, failure.message)
    except Exception as e:
        # misbehaving gateway plugin; still recorded as a failed send
        failure = errors.DispatchFailure(f"{type(e).__name__}: {e}", details={"trigger_id": str(trigger.id), "campaign": trigger.campaign_name})
        logger.exception("whatsapp gateway crashed lead=%s status=%s", lead.id, new_status)

    if failure is not None:
        outcome = DispatchOutcome(trigger_id=trigger.id, ok=False, params=params, destination=destination, error=failure.message)

    if outcome.ok:
        message = f"WhatsApp message sent successfully to {destination}"
    else:
        message = f"Failed to send WhatsApp: {outcome.error}"

    record_activity(
        lead=lead,
        activity_type=Activity.Type.WHATSAPP,
        subject=f"WhatsApp sent via {trigger.campaign_name}",
        message=message,
        user_id=actor_user_id,
        data={
            "trigger_id": str(trigger.id),
            "campaign_name": trigger.campaign_name,
            "status": new_status,
            "params": params,
            "destination": destination,
            "ok": outcome.ok,
            "delivery_id": outcome.delivery_id,
            "error": outcome.error,
        },
    )

    publish(
        whatsapp_dispatched,
        lead=lead,
        trigger_id=trigger.id,
        campaign_name=trigger.campaign_name,
        ok=outcome.ok,
        delivery_id=outcome.delivery_id,
        error=outcome.error,
    )
    return outcome
