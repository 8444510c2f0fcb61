from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.common.flags import get_entitlements
from core.workspaces.resolver import require_workspace_member

@api_view(["GET"])
@permission_classes([IsAuthenticated])
def entitlements(request):
    workspace_id, member, err = require_workspace_member(request)
    if err:
        return err

    flags = get_entitlements(str(workspace_id))
    return Response({"workspace_id": str(workspace_id), "flags": flags})
