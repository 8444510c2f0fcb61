from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.assignment.engine import assign_lead, set_owner, validate_owner
from core.audit.utils import audit
from core.common import errors
from core.iam.models import WorkspaceMembership
from core.leads.activities import list_for_lead, record_activity
from core.leads.domain_events import lead_ingested, publish
from core.leads.models import Activity, Lead, LeadField, LeadStatusConfig
from core.leads.normalizer import ORIGIN_MANUAL, coerce_custom_fields, normalize_source, upsert_lead
from core.leads.serializers import (
    ActivitySerializer,
    LeadCreateSerializer,
    LeadDetailSerializer,
    LeadFieldSerializer,
    LeadListSerializer,
    LeadStatusChangeSerializer,
    LeadStatusConfigSerializer,
    LeadUpdateSerializer,
    NoteCreateSerializer,
)
from core.leads.status import change_lead_status, get_status_config
from core.workspaces.resolver import require_workspace_member

EDITORS = WorkspaceMembership.EDITOR_ROLES
ELEVATED = WorkspaceMembership.ELEVATED_ROLES

CONTACT_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "priority",
    "city",
    "state",
    "country",
    "course_interested",
    "campaign",
    "tags",
)


def _paging(request):
    try:
        limit = int(request.query_params.get("limit") or 50)
    except (TypeError, ValueError):
        limit = 50
    limit = max(1, min(200, limit))

    try:
        offset = int(request.query_params.get("offset") or 0)
    except (TypeError, ValueError):
        offset = 0
    return limit, max(0, offset)


def _get_lead(workspace_id, lead_id):
    return Lead.objects.filter(id=lead_id, workspace_id=workspace_id).first()


def _lead_not_found():
    return errors.NotFound("Lead not found").as_response()


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def leads_list(request):
    """
    GET /v1/leads
    Headers: Authorization: Bearer <jwt>, X-Workspace-Id: <uuid>

    Query:
      status=<optional>
      source=<optional, aliases accepted>
      owner_user_id=<optional>
      unassigned=<1 optional>
      q=<search optional: name/email/phone>
      limit=<int optional, default 50, max 200>
      offset=<int optional, default 0>

    POST /v1/leads
    Manual entry; deduplicated by phone like webhook leads.
    """
    if request.method == "POST":
        return _leads_create(request)

    workspace_id, member, err = require_workspace_member(request)
    if err:
        return err

    limit, offset = _paging(request)
    qs = Lead.objects.filter(workspace_id=workspace_id).order_by("-created_at", "-id")

    status_val = (request.query_params.get("status") or "").strip()
    if status_val:
        qs = qs.filter(status=status_val)

    source = normalize_source(request.query_params.get("source"))
    if source:
        qs = qs.filter(source=source)

    owner = (request.query_params.get("owner_user_id") or "").strip()
    if owner.isdigit():
        qs = qs.filter(owner_user_id=int(owner))

    if request.query_params.get("unassigned") in ("1", "true"):
        qs = qs.filter(owner_user_id__isnull=True)

    q = (request.query_params.get("q") or "").strip()
    if q:
        qs = qs.filter(
            Q(first_name__icontains=q) |
            Q(last_name__icontains=q) |
            Q(email__icontains=q) |
            Q(phone__icontains=q)
        )

    total = qs.count()
    items = qs[offset: offset + limit]

    return Response(
        {
            "items": LeadListSerializer(items, many=True).data,
            "page": {"limit": limit, "offset": offset, "total": total},
        }
    )


def _leads_create(request):
    workspace_id, member, err = require_workspace_member(request, roles=EDITORS)
    if err:
        return err

    s = LeadCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    payload = dict(s.validated_data)
    owner_user_id = payload.pop("owner_user_id", None)

    try:
        result = upsert_lead(workspace_id=workspace_id, payload=payload, origin=ORIGIN_MANUAL, actor_user_id=request.user.id)
        lead = result.lead
        assigned = False
        if result.is_new:
            if owner_user_id is not None:
                assigned = set_owner(lead=lead, owner_user_id=owner_user_id, actor_user_id=request.user.id).assigned
            else:
                assigned = assign_lead(lead=lead, actor_user_id=request.user.id).assigned
        elif result.requested_status:
            change_lead_status(lead=lead, new_status=result.requested_status, actor_user_id=request.user.id, source="manual")
    except errors.CrmError as e:
        return e.as_response()

    publish(lead_ingested, lead=lead, is_new=result.is_new, assigned=assigned)
    return Response(
        {"lead": LeadDetailSerializer(lead).data, "action": "created" if result.is_new else "updated"},
        status=201 if result.is_new else 200,
    )


@api_view(["GET", "PATCH"])
@permission_classes([IsAuthenticated])
def leads_detail(request, lead_id):
    """
    GET /v1/leads/{lead_id}
    PATCH /v1/leads/{lead_id}
    Headers: Authorization: Bearer <jwt>, X-Workspace-Id: <uuid>

    PATCH routes `status` through the status service (fires triggers) and
    `owner_user_id` through the assignment engine.
    """
    workspace_id, member, err = require_workspace_member(request)
    if err:
        return err

    lead = _get_lead(workspace_id, lead_id)
    if not lead:
        return _lead_not_found()

    if request.method == "GET":
        return Response({"lead": LeadDetailSerializer(lead).data})

    if not member.can_edit:
        return errors.Forbidden("Insufficient role to update lead").as_response()

    s = LeadUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = s.validated_data

    if "owner_user_id" in data and not member.is_elevated:
        return errors.Forbidden("Only owner/admin/manager can reassign leads").as_response()

    try:
        # reject bad status/owner before any field is written
        if "status" in data and get_status_config(workspace_id, data["status"]) is None:
            raise errors.ValidationError("Unknown status", details={"status": data["status"]})
        if "owner_user_id" in data:
            validate_owner(workspace_id, data["owner_user_id"])

        custom = None
        if "custom_fields" in data:
            custom = coerce_custom_fields(workspace_id=workspace_id, raw=data["custom_fields"], strict=True)

        # Snapshot BEFORE applying changes
        before = {f: getattr(lead, f) for f in CONTACT_FIELDS if f in data}
        changed = []
        for field in CONTACT_FIELDS:
            if field in data and getattr(lead, field) != data[field]:
                setattr(lead, field, data[field])
                changed.append(field)
        if custom:
            lead.custom_fields = {**(lead.custom_fields or {}), **custom}
            changed.append("custom_fields")

        if changed:
            with transaction.atomic():
                lead.updated_at = timezone.now()
                lead.save(update_fields=changed + ["updated_at"])
                record_activity(
                    lead=lead,
                    activity_type=Activity.Type.EDIT,
                    subject="Lead Updated",
                    message="Updated " + ", ".join(changed),
                    user_id=request.user.id,
                    data={
                        "before": {k: v for k, v in before.items() if k in changed},
                        "after": {k: getattr(lead, k) for k in changed if k != "custom_fields"},
                        "custom_field_keys": sorted((custom or {}).keys()),
                    },
                )

        if "status" in data:
            change_lead_status(lead=lead, new_status=data["status"], actor_user_id=request.user.id, source="manual")

        if "owner_user_id" in data:
            set_owner(lead=lead, owner_user_id=data["owner_user_id"], actor_user_id=request.user.id)
    except errors.CrmError as e:
        return e.as_response()

    lead.refresh_from_db()
    return Response({"lead": LeadDetailSerializer(lead).data})


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def lead_change_status(request, lead_id):
    """
    POST /v1/leads/{lead_id}/status
    Body: {"status": "INTERESTED"}
    """
    workspace_id, member, err = require_workspace_member(request, roles=EDITORS)
    if err:
        return err

    lead = _get_lead(workspace_id, lead_id)
    if not lead:
        return _lead_not_found()

    s = LeadStatusChangeSerializer(data=request.data)
    s.is_valid(raise_exception=True)

    try:
        change = change_lead_status(lead=lead, new_status=s.validated_data["status"], actor_user_id=request.user.id, source="manual")
    except errors.CrmError as e:
        return e.as_response()

    return Response({"lead": LeadDetailSerializer(lead).data, "changed": change is not None})


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def lead_timeline(request, lead_id):
    """
    GET /v1/leads/{lead_id}/timeline
    POST /v1/leads/{lead_id}/timeline   (adds a NOTE)
    Headers: Authorization: Bearer <jwt>, X-Workspace-Id: <uuid>

    Query:
      limit=<int optional, default 50, max 200>
      offset=<int optional, default 0>
      type=<optional exact match filter>
    """
    workspace_id, member, err = require_workspace_member(request)
    if err:
        return err

    lead = _get_lead(workspace_id, lead_id)
    if not lead:
        return _lead_not_found()

    if request.method == "POST":
        if not member.can_edit:
            return errors.Forbidden("Insufficient role to add notes").as_response()

        s = NoteCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        # the note is the primary write here, so no best-effort wrapper
        note = Activity.objects.create(
            workspace_id=workspace_id,
            lead=lead,
            user_id=request.user.id,
            type=Activity.Type.NOTE,
            subject=s.validated_data.get("subject") or "Note",
            message=s.validated_data["message"],
        )
        return Response({"activity": ActivitySerializer(note).data}, status=201)

    limit, offset = _paging(request)
    activity_type = (request.query_params.get("type") or "").strip()

    total_qs = Activity.objects.filter(workspace_id=workspace_id, lead_id=lead.id)
    if activity_type:
        total_qs = total_qs.filter(type=activity_type)

    items = list_for_lead(workspace_id=workspace_id, lead_id=lead.id, limit=limit, offset=offset, activity_type=activity_type)
    return Response(
        {
            "items": ActivitySerializer(items, many=True).data,
            "page": {"limit": limit, "offset": offset, "total": total_qs.count()},
        }
    )


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def lead_statuses(request):
    """
    GET  /v1/lead-statuses   grouped by stage
    POST /v1/lead-statuses   (elevated)
    """
    workspace_id, member, err = require_workspace_member(request)
    if err:
        return err

    if request.method == "GET":
        qs = LeadStatusConfig.objects.filter(workspace_id=workspace_id, is_deleted=False).order_by("order", "name")
        grouped = {stage: [] for stage in LeadStatusConfig.Stage.values}
        for config in qs:
            grouped[config.stage].append(LeadStatusConfigSerializer(config).data)
        return Response({"stages": grouped})

    if not member.is_elevated:
        return errors.Forbidden("Only owner/admin/manager can manage statuses").as_response()

    s = LeadStatusConfigSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = s.validated_data

    try:
        with transaction.atomic():
            if data.get("is_default"):
                LeadStatusConfig.objects.filter(workspace_id=workspace_id, is_default=True).update(is_default=False)
            config = LeadStatusConfig.objects.create(workspace_id=workspace_id, **data)
    except IntegrityError:
        return errors.ValidationError("Status already exists", details={"name": data["name"]}).as_response()

    audit(workspace_id, "lead_status.created", "lead_status", config.id, actor_user_id=request.user.id, data={"name": config.name, "stage": config.stage})
    return Response({"status": LeadStatusConfigSerializer(config).data}, status=201)


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def lead_fields(request):
    """
    GET  /v1/lead-fields
    POST /v1/lead-fields   (elevated)
    """
    workspace_id, member, err = require_workspace_member(request)
    if err:
        return err

    if request.method == "GET":
        qs = LeadField.objects.filter(workspace_id=workspace_id).order_by("order", "key")
        return Response({"items": LeadFieldSerializer(qs, many=True).data})

    if not member.is_elevated:
        return errors.Forbidden("Only owner/admin/manager can manage lead fields").as_response()

    s = LeadFieldSerializer(data=request.data)
    s.is_valid(raise_exception=True)

    try:
        with transaction.atomic():
            field = LeadField.objects.create(workspace_id=workspace_id, **s.validated_data)
    except IntegrityError:
        return errors.ValidationError("Field key already exists", details={"key": s.validated_data["key"]}).as_response()

    audit(workspace_id, "lead_field.created", "lead_field", field.id, actor_user_id=request.user.id, data={"key": field.key, "field_type": field.field_type})
    return Response({"field": LeadFieldSerializer(field).data}, status=201)
