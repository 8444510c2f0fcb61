from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from core.assignment.engine import AssignmentOutcome, assign_lead
from core.common import errors
from core.leads.domain_events import lead_ingested, publish
from core.leads.models import Lead
from core.leads.normalizer import ORIGIN_WEBHOOK, upsert_lead
from core.leads.status import change_lead_status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestResult:
    lead: Lead
    is_new: bool
    assignment: AssignmentOutcome

    @property
    def action(self) -> str:
        return "created" if self.is_new else "updated"


def ingest_lead(*, workspace_id, payload: dict[str, Any]) -> IngestResult:
    """
    Webhook pipeline: upsert -> assign (new leads) -> status change
    (existing leads naming another status) -> lead_ingested.

    Only validation errors from the upsert propagate. Once the lead row
    exists, routing and notification problems are logged and swallowed.
    """
    result = upsert_lead(workspace_id=workspace_id, payload=payload, origin=ORIGIN_WEBHOOK)
    lead = result.lead

    assignment = AssignmentOutcome(assigned=False, owner_user_id=lead.owner_user_id)
    if result.is_new:
        try:
            assignment = assign_lead(lead=lead)
        except Exception:
            logger.exception("assignment crashed for ingested lead=%s", lead.id)
    elif result.requested_status and result.requested_status != lead.status:
        try:
            change_lead_status(lead=lead, new_status=result.requested_status, source="webhook")
        except errors.ValidationError as e:
            logger.warning("ignoring webhook status for lead=%s: %s %s", lead.id, e.message, e.details)
        except Exception:
            logger.exception("status change failed for ingested lead=%s status=%s", lead.id, result.requested_status)

    publish(lead_ingested, lead=lead, is_new=result.is_new, assigned=assignment.assigned)
    return IngestResult(lead=lead, is_new=result.is_new, assignment=assignment)
