import logging

from django.conf import settings
from django.utils import timezone
from redis.exceptions import RedisError
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.common import errors
from core.common.ratelimit import rate_limit_or_raise
from core.ingestion.pipeline import ingest_lead
from core.ingestion.serializers import WebhookAckSerializer, WebhookLogSerializer
from core.leads.models import Activity
from core.workspaces.resolver import require_workspace_member, resolve_webhook_workspace

logger = logging.getLogger(__name__)

WEBHOOK_LOG_SUBJECTS = ("Lead Created via Webhook", "Lead Updated via Webhook")


def _rate_limit(workspace_id):
    bucket = timezone.now().strftime("%Y%m%d%H%M")
    try:
        rate_limit_or_raise(
            key=f"rl:webhook:{workspace_id}:{bucket}",
            limit=int(getattr(settings, "INGESTION_RATE_LIMIT_PER_MIN", 120)),
            window_seconds=60,
        )
    except RedisError:
        # limiter unavailable; accept the lead rather than lose it
        logger.warning("webhook rate limiter unavailable workspace=%s", workspace_id)


class LeadWebhookView(APIView):
    """
    POST /v1/webhooks/lead
    Headers:
      X-Workspace-Id: <uuid>
      X-Webhook-Token: <workspace webhook token>

    Body (JSON):
      {
        "firstName": "John", "lastName": "Doe",
        "phone": "98765 43210",            (required; mobile / phone_number accepted)
        "email": "john@example.com",
        "source": "Facebook",              (aliases mapped, default WEBHOOK)
        "status": "INTERESTED",            (applied to existing leads)
        "courseInterested": "Web Development",
        "customFields": {"budget": "50000"},
        ...any other key is stored as a custom field
      }

    Response 201 (created) / 200 (updated):
      {"lead_id", "action", "assigned", "owner_user_id", "assignment_strategy"}
    """
    authentication_classes = []
    permission_classes = []

    def post(self, request):
        token_header = getattr(settings, "WEBHOOK_TOKEN_HEADER", "X-Webhook-Token")

        try:
            workspace = resolve_webhook_workspace(
                workspace_id=getattr(request, "workspace_id", None),
                token=request.headers.get(token_header),
            )
            _rate_limit(workspace.id)

            payload = request.data
            if hasattr(payload, "dict"):
                payload = payload.dict()
            if not isinstance(payload, dict):
                raise errors.ValidationError("Body must be a JSON object")

            result = ingest_lead(workspace_id=workspace.id, payload=payload)
        except errors.RateLimited as e:
            return e.as_response(headers={"Retry-After": str(e.retry_after_seconds)})
        except errors.CrmError as e:
            return e.as_response()

        ack = WebhookAckSerializer({
            "lead_id": result.lead.id,
            "action": result.action,
            "assigned": result.assignment.assigned,
            "owner_user_id": result.lead.owner_user_id,
            "assignment_strategy": result.assignment.strategy,
        })
        return Response(ack.data, status=status.HTTP_201_CREATED if result.is_new else status.HTTP_200_OK)

    def get(self, request):
        token_header = getattr(settings, "WEBHOOK_TOKEN_HEADER", "X-Webhook-Token")
        workspace_header = getattr(settings, "WORKSPACE_HEADER", "X-Workspace-Id")
        return Response({
            "endpoint": "/v1/webhooks/lead",
            "method": "POST",
            "required_headers": {
                workspace_header: "Your workspace ID",
                token_header: "Your workspace webhook token",
                "Content-Type": "application/json",
            },
            "required_fields": {"phone": "string (aliases: mobile, phone_number)"},
            "optional_fields": {
                "firstName": "string (aliases: first_name, fname, name)",
                "lastName": "string (aliases: last_name, lname)",
                "email": "string",
                "source": "WEBSITE | FACEBOOK | INSTAGRAM | GOOGLE_ADS | LINKEDIN | REFERRAL | WALK_IN | PHONE_INQUIRY | WHATSAPP | EMAIL_CAMPAIGN | custom",
                "status": "workspace status name",
                "priority": "LOW | MEDIUM | HIGH",
                "city": "string",
                "state": "string",
                "country": "string",
                "courseInterested": "string (aliases: course_interested, course)",
                "campaign": "string",
                "tags": "comma-separated string or list",
                "customFields": "object",
            },
        })


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def webhook_logs(request):
    """
    GET /v1/webhooks/lead/logs?limit=<default 20, max 100>
    Recent webhook receipts for this workspace, newest first.
    """
    workspace_id, member, err = require_workspace_member(request)
    if err:
        return err

    try:
        limit = int(request.query_params.get("limit") or 20)
    except (TypeError, ValueError):
        limit = 20
    limit = max(1, min(100, limit))

    qs = (
        Activity.objects.filter(workspace_id=workspace_id, type=Activity.Type.SYSTEM, subject__in=WEBHOOK_LOG_SUBJECTS)
        .order_by("-created_at", "-id")[:limit]
    )
    return Response({"items": WebhookLogSerializer(qs, many=True).data})
