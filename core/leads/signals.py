from __future__ import annotations

from django.db.models.signals import post_save
from django.dispatch import receiver

from core.leads.status import seed_default_statuses
from core.workspaces.models import Workspace


@receiver(post_save, sender=Workspace)
def on_workspace_created(sender, instance: Workspace, created: bool, **kwargs):
    if not created:
        return
    seed_default_statuses(instance.id)
