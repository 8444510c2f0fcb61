from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.audit.utils import audit
from core.common import errors
from core.iam.models import WorkspaceMembership
from core.leads.status import get_status_config
from core.whatsapp.models import WhatsAppTrigger
from core.whatsapp.serializers import WhatsAppTriggerOutSerializer, WhatsAppTriggerWriteSerializer
from core.workspaces.resolver import require_workspace_member

ELEVATED = WorkspaceMembership.ELEVATED_ROLES


def _unknown_status(status):
    return errors.ValidationError("Unknown lead status", details={"status": status}).as_response()


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def whatsapp_triggers(request):
    """
    GET  /v1/whatsapp/triggers
    POST /v1/whatsapp/triggers   (upsert by status)
    Headers: Authorization, X-Workspace-Id
    """
    workspace_id, member, err = require_workspace_member(request, roles=ELEVATED)
    if err:
        return err

    if request.method == "GET":
        qs = WhatsAppTrigger.objects.filter(workspace_id=workspace_id).order_by("status")
        return Response({"items": WhatsAppTriggerOutSerializer(qs, many=True).data})

    s = WhatsAppTriggerWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = s.validated_data

    if get_status_config(workspace_id, data["status"]) is None:
        return _unknown_status(data["status"])

    defaults = {k: v for k, v in data.items() if k != "status"}
    defaults["updated_at"] = timezone.now()
    with transaction.atomic():
        trigger, created = WhatsAppTrigger.objects.update_or_create(
            workspace_id=workspace_id,
            status=data["status"],
            defaults=defaults,
        )

    audit(
        workspace_id,
        "whatsapp_trigger.created" if created else "whatsapp_trigger.updated",
        "whatsapp_trigger",
        trigger.id,
        actor_user_id=request.user.id,
        data={"status": trigger.status, "campaign_name": trigger.campaign_name, "is_enabled": trigger.is_enabled},
    )
    return Response({"trigger": WhatsAppTriggerOutSerializer(trigger).data}, status=201 if created else 200)


@api_view(["PATCH"])
@permission_classes([IsAuthenticated])
def whatsapp_trigger_detail(request, trigger_id):
    """
    PATCH /v1/whatsapp/triggers/{trigger_id}
    """
    workspace_id, member, err = require_workspace_member(request, roles=ELEVATED)
    if err:
        return err

    trigger = WhatsAppTrigger.objects.filter(id=trigger_id, workspace_id=workspace_id).first()
    if not trigger:
        return errors.NotFound("WhatsApp trigger not found").as_response()

    s = WhatsAppTriggerWriteSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    data = s.validated_data

    if "status" in data and get_status_config(workspace_id, data["status"]) is None:
        return _unknown_status(data["status"])

    if data:
        for key, value in data.items():
            setattr(trigger, key, value)
        trigger.updated_at = timezone.now()
        try:
            with transaction.atomic():
                trigger.save(update_fields=list(data.keys()) + ["updated_at"])
        except IntegrityError:
            return errors.ValidationError(
                "A trigger for this status already exists", details={"status": data.get("status")}
            ).as_response()
        audit(workspace_id, "whatsapp_trigger.updated", "whatsapp_trigger", trigger.id, actor_user_id=request.user.id, data={"fields": sorted(data.keys())})

    return Response({"trigger": WhatsAppTriggerOutSerializer(trigger).data})
