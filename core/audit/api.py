from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.audit.models import AuditLog
from core.iam.models import WorkspaceMembership
from core.iam.permissions import HasRole, IsWorkspaceMember


@api_view(["GET"])
@permission_classes([IsAuthenticated, IsWorkspaceMember, HasRole.with_roles(*WorkspaceMembership.ELEVATED_ROLES)])
def audit_logs(request):
    """
    GET /v1/audit/logs?action=<optional exact match>
    """
    workspace_id = getattr(request, "workspace_id", None)
    action = (request.query_params.get("action") or "").strip()

    qs = AuditLog.objects.filter(workspace_id=workspace_id)
    if action:
        qs = qs.filter(action=action)
    qs = qs.order_by("-created_at", "-id")[:200]

    return Response({
        "items": [
            {
                "action": a.action,
                "entity_type": a.entity_type,
                "entity_id": a.entity_id,
                "actor_user_id": a.actor_user_id,
                "data": a.data_json,
                "created_at": a.created_at,
            }
            for a in qs
        ]
    })
