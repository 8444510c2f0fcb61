from __future__ import annotations

from django.dispatch import receiver

from core.leads.domain_events import lead_status_changed
from core.leads.models import Lead
from core.whatsapp.dispatcher import dispatch_status_change


@receiver(lead_status_changed, sender=Lead, dispatch_uid="whatsapp_on_status_change")
def on_lead_status_changed(sender, lead: Lead, old_status: str, new_status: str, actor_user_id=None, **kwargs):
    dispatch_status_change(lead=lead, old_status=old_status, new_status=new_status, actor_user_id=actor_user_id)
