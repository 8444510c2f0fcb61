from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.assignment.engine import assign_unassigned_by_source
from core.assignment.models import AssignmentRule, RuleRotationState
from core.assignment.serializers import (
    ApplyBySourceSerializer,
    AssignmentRuleOutSerializer,
    AssignmentRuleWriteSerializer,
)
from core.audit.utils import audit
from core.common import errors
from core.iam.models import WorkspaceMembership
from core.leads.models import Lead
from core.workspaces.resolver import require_workspace_member

ELEVATED = WorkspaceMembership.ELEVATED_ROLES


def _get_rule(workspace_id, rule_id):
    return AssignmentRule.objects.select_related("rotation_state").filter(id=rule_id, workspace_id=workspace_id).first()


def _rule_not_found():
    return errors.NotFound("Assignment rule not found").as_response()


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def assignment_rules(request):
    """
    GET  /v1/assignment-rules   (evaluation order)
    POST /v1/assignment-rules
    Headers: Authorization, X-Workspace-Id
    """
    workspace_id, member, err = require_workspace_member(request, roles=ELEVATED)
    if err:
        return err

    if request.method == "GET":
        qs = (
            AssignmentRule.objects.select_related("rotation_state")
            .filter(workspace_id=workspace_id)
            .order_by("priority", "created_at", "id")
        )
        return Response({"items": AssignmentRuleOutSerializer(qs, many=True).data})

    s = AssignmentRuleWriteSerializer(data=request.data, context={"workspace_id": workspace_id})
    s.is_valid(raise_exception=True)
    data = s.validated_data

    with transaction.atomic():
        rule = AssignmentRule.objects.create(
            workspace_id=workspace_id,
            created_by_user_id=request.user.id,
            **data,
        )
        RuleRotationState.objects.create(rule=rule)

    audit(workspace_id, "assignment_rule.created", "assignment_rule", rule.id, actor_user_id=request.user.id, data={"assignment_type": rule.assignment_type, "source": rule.source, "priority": rule.priority})
    return Response({"rule": AssignmentRuleOutSerializer(_get_rule(workspace_id, rule.id)).data}, status=201)


@api_view(["GET", "PATCH", "DELETE"])
@permission_classes([IsAuthenticated])
def assignment_rule_detail(request, rule_id):
    """
    GET    /v1/assignment-rules/{rule_id}
    PATCH  /v1/assignment-rules/{rule_id}
    DELETE /v1/assignment-rules/{rule_id}
    """
    workspace_id, member, err = require_workspace_member(request, roles=ELEVATED)
    if err:
        return err

    rule = _get_rule(workspace_id, rule_id)
    if not rule:
        return _rule_not_found()

    if request.method == "GET":
        return Response({"rule": AssignmentRuleOutSerializer(rule).data})

    if request.method == "DELETE":
        rule.delete()
        audit(workspace_id, "assignment_rule.deleted", "assignment_rule", rule_id, actor_user_id=request.user.id)
        return Response(status=204)

    s = AssignmentRuleWriteSerializer(instance=rule, data=request.data, partial=True, context={"workspace_id": workspace_id})
    s.is_valid(raise_exception=True)
    data = s.validated_data

    if data:
        for key, value in data.items():
            setattr(rule, key, value)
        rule.updated_at = timezone.now()
        rule.save(update_fields=list(data.keys()) + ["updated_at"])
        audit(workspace_id, "assignment_rule.updated", "assignment_rule", rule.id, actor_user_id=request.user.id, data={"fields": sorted(data.keys())})

    return Response({"rule": AssignmentRuleOutSerializer(rule).data})


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def assignment_rule_toggle(request, rule_id):
    """
    POST /v1/assignment-rules/{rule_id}/toggle
    """
    workspace_id, member, err = require_workspace_member(request, roles=ELEVATED)
    if err:
        return err

    rule = _get_rule(workspace_id, rule_id)
    if not rule:
        return _rule_not_found()

    rule.is_enabled = not rule.is_enabled
    rule.updated_at = timezone.now()
    rule.save(update_fields=["is_enabled", "updated_at"])
    audit(workspace_id, "assignment_rule.toggled", "assignment_rule", rule.id, actor_user_id=request.user.id, data={"is_enabled": rule.is_enabled})

    return Response({"rule": AssignmentRuleOutSerializer(rule).data})


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def assignment_apply_by_source(request):
    """
    POST /v1/assignment-rules/apply-by-source
    Body: {"source": "FACEBOOK"}
    Runs the rule engine on every unassigned lead of that source.
    """
    workspace_id, member, err = require_workspace_member(request, roles=ELEVATED)
    if err:
        return err

    s = ApplyBySourceSerializer(data=request.data)
    s.is_valid(raise_exception=True)

    try:
        result = assign_unassigned_by_source(
            workspace_id=workspace_id,
            source=s.validated_data["source"],
            actor_user_id=request.user.id,
        )
    except errors.ValidationError as e:
        return e.as_response()

    audit(workspace_id, "assignment_rule.applied_by_source", "workspace", workspace_id, actor_user_id=request.user.id, data=result)
    return Response(result)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def assignment_sources(request):
    """
    GET /v1/assignment-rules/sources
    Distinct lead sources in this workspace, with unassigned counts.
    """
    workspace_id, member, err = require_workspace_member(request, roles=ELEVATED)
    if err:
        return err

    rows = (
        Lead.objects.filter(workspace_id=workspace_id)
        .values("source")
        .annotate(total=Count("id"), unassigned=Count("id", filter=Q(owner_user_id__isnull=True)))
        .order_by("source")
    )
    return Response({"items": list(rows)})
