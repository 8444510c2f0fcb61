from __future__ import annotations

import logging
from typing import Any

from django.db import DatabaseError, transaction

from core.leads.models import Activity, Lead

logger = logging.getLogger(__name__)


def record_activity(
    *,
    lead: Lead,
    activity_type: str,
    subject: str = "",
    message: str = "",
    user_id=None,
    data: dict[str, Any] | None = None,
) -> Activity | None:
    """
    Best-effort append to the lead timeline. Workspace is derived from the
    lead. A failed write is logged and returns None; the caller's own
    mutation is never rolled back because of it.
    """
    try:
        with transaction.atomic():
            return Activity.objects.create(
                workspace_id=lead.workspace_id,
                lead=lead,
                user_id=user_id,
                type=activity_type,
                subject=subject[:255],
                message=message or "",
                data_json=data or {},
            )
    except DatabaseError:
        logger.exception("activity write failed lead=%s type=%s", lead.id, activity_type)
        return None


def list_for_lead(*, workspace_id, lead_id, limit: int = 50, offset: int = 0, activity_type: str = ""):
    qs = Activity.objects.filter(workspace_id=workspace_id, lead_id=lead_id).order_by("-created_at", "-id")
    if activity_type:
        qs = qs.filter(type=activity_type)
    return qs[offset: offset + limit]
