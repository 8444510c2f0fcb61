from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction
from django.utils import timezone

from core.common import errors
from core.leads.activities import record_activity
from core.leads.domain_events import lead_status_changed, publish
from core.leads.models import Activity, Lead, LeadStatusConfig

logger = logging.getLogger(__name__)

DEFAULT_STATUS_NAME = "NEW_LEAD"
CONVERTED_STATUS_NAME = "CONVERTED"

# (name, stage, color); first entry is the workspace default
DEFAULT_STATUSES = [
    ("NEW_LEAD", LeadStatusConfig.Stage.INITIAL, "#3b82f6"),
    ("INTERESTED", LeadStatusConfig.Stage.ACTIVE, "#22c55e"),
    ("JUST_CURIOUS", LeadStatusConfig.Stage.ACTIVE, "#a3e635"),
    ("FOLLOW_UP", LeadStatusConfig.Stage.ACTIVE, "#f59e0b"),
    ("CONTACTED", LeadStatusConfig.Stage.ACTIVE, "#06b6d4"),
    ("QUALIFIED", LeadStatusConfig.Stage.ACTIVE, "#8b5cf6"),
    ("NEGOTIATION", LeadStatusConfig.Stage.ACTIVE, "#ec4899"),
    ("NO_RESPONSE", LeadStatusConfig.Stage.CLOSED, "#9ca3af"),
    ("NOT_INTERESTED", LeadStatusConfig.Stage.CLOSED, "#ef4444"),
    ("CONVERTED", LeadStatusConfig.Stage.CLOSED, "#16a34a"),
    ("LOST", LeadStatusConfig.Stage.CLOSED, "#dc2626"),
    ("DO_NOT_CONTACT", LeadStatusConfig.Stage.CLOSED, "#6b7280"),
    ("WON", LeadStatusConfig.Stage.CLOSED, "#15803d"),
    ("DONE", LeadStatusConfig.Stage.CLOSED, "#4b5563"),
]


@dataclass(frozen=True)
class StatusChange:
    lead: Lead
    old_status: str
    new_status: str


def seed_default_statuses(workspace_id) -> int:
    created = 0
    for order, (name, stage, color) in enumerate(DEFAULT_STATUSES):
        _, was_created = LeadStatusConfig.objects.get_or_create(
            workspace_id=workspace_id,
            name=name,
            defaults={"stage": stage, "color": color, "order": order, "is_default": order == 0},
        )
        created += int(was_created)
    return created


def get_status_config(workspace_id, name: str) -> LeadStatusConfig | None:
    name = (name or "").strip()
    if not name:
        return None
    return LeadStatusConfig.objects.filter(workspace_id=workspace_id, name=name, is_deleted=False).first()


def get_default_status(workspace_id) -> LeadStatusConfig:
    """
    The is_default status, falling back to NEW_LEAD. Workspaces that predate
    seeding get the defaults on first use.
    """
    qs = LeadStatusConfig.objects.filter(workspace_id=workspace_id, is_deleted=False)
    config = qs.filter(is_default=True).first() or qs.filter(name=DEFAULT_STATUS_NAME).first()
    if config is None:
        seed_default_statuses(workspace_id)
        config = qs.filter(is_default=True).first()
    return config


def change_lead_status(*, lead: Lead, new_status: str, actor_user_id=None, source: str = "manual") -> StatusChange | None:
    """
    Single write path for Lead.status.

    Returns None when the lead already has new_status (nothing written, no
    event). Otherwise writes status + stage, stamps converted_at on the first
    move to CONVERTED, appends a STATUS_CHANGE activity and, once the write is
    done, sends lead_status_changed.
    """
    config = get_status_config(lead.workspace_id, new_status)
    if config is None:
        raise errors.ValidationError("Unknown status", details={"status": new_status})

    with transaction.atomic():
        locked = Lead.objects.select_for_update().get(pk=lead.pk, workspace_id=lead.workspace_id)
        old_status = locked.status
        if old_status == config.name:
            return None

        locked.status = config.name
        locked.stage = config.stage
        fields = ["status", "stage", "updated_at"]
        if config.name == CONVERTED_STATUS_NAME and locked.converted_at is None:
            locked.converted_at = timezone.now()
            fields.append("converted_at")
        locked.updated_at = timezone.now()
        locked.save(update_fields=fields)

        record_activity(
            lead=locked,
            activity_type=Activity.Type.STATUS_CHANGE,
            subject="Status Changed",
            message=f"Status changed from {old_status} to {config.name}",
            user_id=actor_user_id,
            data={"old_status": old_status, "new_status": config.name, "source": source},
        )

    for attr in fields:
        setattr(lead, attr, getattr(locked, attr))

    logger.info("lead status changed lead=%s %s -> %s", lead.id, old_status, config.name)
    publish(
        lead_status_changed,
        lead=lead,
        old_status=old_status,
        new_status=config.name,
        actor_user_id=actor_user_id,
    )
    return StatusChange(lead=lead, old_status=old_status, new_status=config.name)
