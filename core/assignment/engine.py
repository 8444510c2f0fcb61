from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from django.conf import settings
from django.db import IntegrityError, OperationalError, transaction
from django.utils import timezone

from core.assignment.models import AssignmentRule, RuleRotationState
from core.common import errors
from core.iam.models import WorkspaceMembership
from core.leads.activities import record_activity
from core.leads.domain_events import lead_assigned, publish
from core.leads.models import Activity, Lead
from core.leads.normalizer import normalize_source

logger = logging.getLogger(__name__)

STRATEGY_NONE = "NONE"
STRATEGY_MANUAL = "MANUAL"


@dataclass(frozen=True)
class AssignmentOutcome:
    assigned: bool
    owner_user_id: int | None = None
    rule_id: object = None
    strategy: str = STRATEGY_NONE
    reason: str = ""


def select_rule(rules: Iterable[AssignmentRule], *, source: str, status: str) -> AssignmentRule | None:
    """
    First enabled rule, by (priority, created_at, id), whose source and
    status filters are unset or equal to the lead's.
    """
    ordered = sorted(
        (r for r in rules if r.is_enabled),
        key=lambda r: (r.priority, r.created_at, str(r.id)),
    )
    for rule in ordered:
        if rule.source and normalize_source(rule.source) != source:
            continue
        if rule.status and rule.status != status:
            continue
        return rule
    return None


def _active_member(workspace_id, user_id) -> WorkspaceMembership | None:
    if user_id is None:
        return None
    return (
        WorkspaceMembership.objects.select_related("user")
        .filter(workspace_id=workspace_id, user_id=user_id, user__is_active=True)
        .first()
    )


def _display_name(user) -> str:
    full = (user.get_full_name() or "").strip() if hasattr(user, "get_full_name") else ""
    return full or user.get_username() or user.email or str(user.pk)


def _locked_state(rule: AssignmentRule) -> RuleRotationState:
    state = RuleRotationState.objects.select_for_update().filter(rule=rule).first()
    if state is not None:
        return state
    try:
        with transaction.atomic():
            RuleRotationState.objects.create(rule=rule)
    except IntegrityError:
        pass  # created concurrently; lock the existing row below
    return RuleRotationState.objects.select_for_update().get(rule=rule)


def _pick_owner(rule: AssignmentRule, state: RuleRotationState) -> int | None:
    """
    Applies the rule's strategy and advances its persisted state. Caller
    holds the state row lock.
    """
    if rule.assignment_type == AssignmentRule.Type.SPECIFIC:
        return rule.assignee_user_id

    if rule.assignment_type == AssignmentRule.Type.ROUND_ROBIN:
        pool = rule.rotation_pool()
        if not pool:
            return None
        index = state.rotation_index
        if index is None:
            index = pool.index(rule.assignee_user_id) if rule.assignee_user_id in pool else 0
        owner = pool[index % len(pool)]
        state.rotation_index = (index + 1) % len(pool)
        return owner

    if rule.assignment_type == AssignmentRule.Type.PERCENTAGE:
        counter = state.percentage_counter
        state.percentage_counter = counter + 1
        if counter % 100 < (rule.percentage or 0):
            return rule.assignee_user_id
        return None

    return None


def _write_owner(lead: Lead, owner: WorkspaceMembership, *, strategy: str, rule_id=None, actor_user_id=None):
    now = timezone.now()
    Lead.objects.filter(pk=lead.pk, workspace_id=lead.workspace_id).update(owner_user_id=owner.user_id, updated_at=now)
    lead.owner_user_id = owner.user_id
    lead.updated_at = now

    name = _display_name(owner.user)
    record_activity(
        lead=lead,
        activity_type=Activity.Type.LEAD_ASSIGNED,
        subject="Lead Assigned",
        message=f"Lead assigned to {name}",
        user_id=actor_user_id,
        data={"owner_user_id": owner.user_id, "strategy": strategy, "rule_id": str(rule_id) if rule_id else None},
    )


def _assign_once(lead: Lead, actor_user_id) -> AssignmentOutcome:
    with transaction.atomic():
        locked = Lead.objects.select_for_update().get(pk=lead.pk, workspace_id=lead.workspace_id)
        if locked.owner_user_id is not None:
            return AssignmentOutcome(assigned=False, owner_user_id=locked.owner_user_id, reason="already_assigned")

        rules = AssignmentRule.objects.filter(workspace_id=locked.workspace_id, is_enabled=True)
        rule = select_rule(rules, source=locked.source, status=locked.status)
        if rule is None:
            raise errors.RoutingSoftFailure("No assignment rule matches", details={"source": locked.source, "status": locked.status})

        state = _locked_state(rule)
        owner_user_id = _pick_owner(rule, state)
        member = _active_member(locked.workspace_id, owner_user_id)
        if member is not None:
            state.assignment_count += 1
            state.last_assigned_at = timezone.now()
            _write_owner(locked, member, strategy=rule.assignment_type, rule_id=rule.id, actor_user_id=actor_user_id)
        state.save()

    if owner_user_id is None:
        # percentage miss or empty pool: terminal, not an error
        return AssignmentOutcome(assigned=False, rule_id=rule.id, strategy=rule.assignment_type, reason="not_selected")

    if member is None:
        # slot stays consumed so the rotation does not stall on a bad user
        raise errors.RoutingSoftFailure(
            "Rule references an inactive or non-member user",
            details={"rule_id": str(rule.id), "user_id": owner_user_id},
        )

    lead.owner_user_id = locked.owner_user_id
    lead.updated_at = locked.updated_at
    return AssignmentOutcome(assigned=True, owner_user_id=owner_user_id, rule_id=rule.id, strategy=rule.assignment_type)


def assign_lead(*, lead: Lead, actor_user_id=None) -> AssignmentOutcome:
    """
    Route an unassigned lead to an owner using the workspace rule set.

    Never raises for routing problems: no match, bad users and exhausted
    lock retries all leave the lead unassigned and are logged.
    """
    max_attempts = max(1, int(getattr(settings, "ASSIGNMENT_MAX_ATTEMPTS", 3)))

    for attempt in range(1, max_attempts + 1):
        try:
            outcome = _assign_once(lead, actor_user_id)
            break
        except errors.RoutingSoftFailure as e:
            logger.warning("routing soft failure lead=%s: %s %s", lead.id, e.message, e.details)
            return AssignmentOutcome(assigned=False, reason=e.message)
        except OperationalError as e:
            conflict = errors.ConcurrencyConflict(str(e), details={"attempt": attempt})
            logger.warning("assignment conflict lead=%s attempt=%s/%s: %s", lead.id, attempt, max_attempts, conflict.message)
    else:
        logger.warning("assignment gave up lead=%s after %s attempts", lead.id, max_attempts)
        return AssignmentOutcome(assigned=False, reason="concurrency_conflict")

    if outcome.assigned:
        logger.info("lead assigned lead=%s owner=%s strategy=%s rule=%s", lead.id, outcome.owner_user_id, outcome.strategy, outcome.rule_id)
        publish(
            lead_assigned,
            lead=lead,
            owner_user_id=outcome.owner_user_id,
            rule_id=outcome.rule_id,
            strategy=outcome.strategy,
        )
    return outcome


def validate_owner(workspace_id, owner_user_id) -> WorkspaceMembership:
    member = _active_member(workspace_id, owner_user_id)
    if member is None:
        raise errors.ValidationError("Owner must be an active workspace member", details={"owner_user_id": owner_user_id})
    return member


def set_owner(*, lead: Lead, owner_user_id: int, actor_user_id=None) -> AssignmentOutcome:
    """
    Manual reassignment. Raises ValidationError when the user is not an
    active member of the lead's workspace.
    """
    member = validate_owner(lead.workspace_id, owner_user_id)

    with transaction.atomic():
        locked = Lead.objects.select_for_update().get(pk=lead.pk, workspace_id=lead.workspace_id)
        if locked.owner_user_id == member.user_id:
            return AssignmentOutcome(assigned=False, owner_user_id=member.user_id, strategy=STRATEGY_MANUAL, reason="unchanged")
        _write_owner(locked, member, strategy=STRATEGY_MANUAL, actor_user_id=actor_user_id)

    lead.owner_user_id = locked.owner_user_id
    lead.updated_at = locked.updated_at
    publish(lead_assigned, lead=lead, owner_user_id=member.user_id, rule_id=None, strategy=STRATEGY_MANUAL)
    return AssignmentOutcome(assigned=True, owner_user_id=member.user_id, strategy=STRATEGY_MANUAL)


def assign_unassigned_by_source(*, workspace_id, source: str, actor_user_id=None) -> dict:
    """
    Run the engine over every unassigned lead of `source`, oldest first.
    """
    canonical = normalize_source(source)
    if not canonical:
        raise errors.ValidationError("source is required", details={"field": "source"})

    lead_ids = list(
        Lead.objects.filter(workspace_id=workspace_id, source=canonical, owner_user_id__isnull=True)
        .order_by("created_at", "id")
        .values_list("id", flat=True)
    )

    assigned = 0
    for lead in Lead.objects.filter(id__in=lead_ids).order_by("created_at", "id"):
        if assign_lead(lead=lead, actor_user_id=actor_user_id).assigned:
            assigned += 1

    logger.info("bulk assign workspace=%s source=%s processed=%s assigned=%s", workspace_id, canonical, len(lead_ids), assigned)
    return {"source": canonical, "processed": len(lead_ids), "assigned": assigned}
