"""
Lead domain events. Publishers call publish() after their write has been
made; observers (WhatsApp dispatcher, outbound event hooks) connect in their
AppConfig.ready().

All signals are sent with sender=Lead and these kwargs:
  lead_ingested:        lead, is_new, assigned
  lead_assigned:        lead, owner_user_id, rule_id, strategy
  lead_status_changed:  lead, old_status, new_status, actor_user_id
  whatsapp_dispatched:  lead, trigger_id, campaign_name, ok, delivery_id, error
"""
import logging

from django.dispatch import Signal

from core.leads.models import Lead

logger = logging.getLogger(__name__)

lead_ingested = Signal()
lead_assigned = Signal()
lead_status_changed = Signal()
whatsapp_dispatched = Signal()


def publish(signal: Signal, *, lead, **kwargs):
    """
    Observer errors are logged, never raised into the publisher: the write
    that produced the event has already happened.
    """
    responses = signal.send_robust(sender=Lead, lead=lead, **kwargs)
    for receiver, result in responses:
        if isinstance(result, Exception):
            logger.error(
                "event observer failed receiver=%s lead=%s",
                getattr(receiver, "__qualname__", receiver),
                lead.pk,
                exc_info=(type(result), result, result.__traceback__),
            )
    return responses
