from __future__ import annotations

import logging

from django.db import transaction
from django.dispatch import receiver

from core.common.flags import is_enabled
from core.event_hooks.models import (
    EVENT_LEAD_ASSIGNED,
    EVENT_LEAD_INGESTED,
    EVENT_LEAD_STATUS_CHANGED,
    EVENT_WHATSAPP_DISPATCHED,
    EventHookDelivery,
    EventHookEndpoint,
)
from core.event_hooks.tasks import deliver_event_hook_delivery
from core.leads.domain_events import lead_assigned, lead_ingested, lead_status_changed, whatsapp_dispatched
from core.leads.models import Lead

logger = logging.getLogger(__name__)

FLAG_KEY = "event_hooks_enabled"


def _lead_payload(lead: Lead) -> dict:
    return {
        "lead_id": str(lead.id),
        "phone": lead.phone,
        "source": lead.source,
        "status": lead.status,
        "owner_user_id": lead.owner_user_id,
    }


def fan_out(*, workspace_id, event_type: str, payload: dict) -> list[EventHookDelivery]:
    """
    One pending delivery per active endpoint that wants `event_type`;
    tasks are enqueued once the surrounding transaction commits.
    """
    if not is_enabled(str(workspace_id), FLAG_KEY):
        return []

    deliveries = []
    for ep in EventHookEndpoint.objects.filter(workspace_id=workspace_id, is_active=True):
        if not ep.allows(event_type):
            continue
        d = EventHookDelivery.objects.create(
            workspace_id=workspace_id,
            endpoint=ep,
            event_type=event_type,
            payload_json=payload,
            status=EventHookDelivery.STATUS_PENDING,
        )
        deliveries.append(d)
        transaction.on_commit(lambda delivery_id=str(d.id): deliver_event_hook_delivery.delay(delivery_id))

    if deliveries:
        logger.info("event %s fanned out to %s endpoints workspace=%s", event_type, len(deliveries), workspace_id)
    return deliveries


@receiver(lead_ingested, sender=Lead, dispatch_uid="event_hooks_lead_ingested")
def on_lead_ingested(sender, lead: Lead, is_new: bool, assigned: bool, **kwargs):
    fan_out(
        workspace_id=lead.workspace_id,
        event_type=EVENT_LEAD_INGESTED,
        payload={**_lead_payload(lead), "is_new": is_new, "assigned": assigned},
    )


@receiver(lead_assigned, sender=Lead, dispatch_uid="event_hooks_lead_assigned")
def on_lead_assigned(sender, lead: Lead, owner_user_id, rule_id=None, strategy="", **kwargs):
    fan_out(
        workspace_id=lead.workspace_id,
        event_type=EVENT_LEAD_ASSIGNED,
        payload={**_lead_payload(lead), "rule_id": str(rule_id) if rule_id else None, "strategy": strategy},
    )


@receiver(lead_status_changed, sender=Lead, dispatch_uid="event_hooks_lead_status_changed")
def on_lead_status_changed(sender, lead: Lead, old_status: str, new_status: str, **kwargs):
    fan_out(
        workspace_id=lead.workspace_id,
        event_type=EVENT_LEAD_STATUS_CHANGED,
        payload={**_lead_payload(lead), "old_status": old_status, "new_status": new_status},
    )


@receiver(whatsapp_dispatched, sender=Lead, dispatch_uid="event_hooks_whatsapp_dispatched")
def on_whatsapp_dispatched(sender, lead: Lead, trigger_id, campaign_name: str, ok: bool, delivery_id="", error="", **kwargs):
    fan_out(
        workspace_id=lead.workspace_id,
        event_type=EVENT_WHATSAPP_DISPATCHED,
        payload={
            **_lead_payload(lead),
            "trigger_id": str(trigger_id),
            "campaign_name": campaign_name,
            "ok": ok,
            "delivery_id": delivery_id,
            "error": error,
        },
    )
