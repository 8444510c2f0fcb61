from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.audit.utils import audit
from core.iam.models import WorkspaceMembership
from core.workspaces.resolver import require_workspace_member


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def workspace_me(request):
    workspace_id, member, err = require_workspace_member(request)
    if err:
        return err

    workspace = member.workspace
    return Response({
        "workspace": {"id": str(workspace.id), "name": workspace.name, "status": workspace.status},
        "membership": {"role": member.role},
        "user": {"id": request.user.id, "email": request.user.email},
    })


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def workspace_rotate_webhook_token(request):
    """
    POST /v1/workspaces/me/webhook-token
    Returns the new inbound webhook token once.
    """
    workspace_id, member, err = require_workspace_member(request, roles=WorkspaceMembership.ELEVATED_ROLES)
    if err:
        return err

    token = member.workspace.rotate_webhook_token()
    audit(workspace_id, "workspace.webhook_token.rotated", "workspace", workspace_id, actor_user_id=request.user.id)

    return Response({"workspace_id": str(workspace_id), "webhook_token": token})
