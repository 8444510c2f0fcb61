from __future__ import annotations

import hmac

from core.common import errors
from core.iam.models import WorkspaceMembership
from core.workspaces.models import Workspace


def resolve_workspace(*, user, workspace_id) -> WorkspaceMembership:
    """
    Resolve the workspace a signed-in caller is acting in.

    Order matters: no session -> Unauthorized, no id -> WorkspaceNotSelected,
    not a member -> Forbidden. Unknown workspaces are reported as Forbidden too
    so callers cannot probe which ids exist.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        raise errors.Unauthorized("Authentication required")

    if not workspace_id:
        raise errors.WorkspaceNotSelected("Workspace id is required")

    member = (
        WorkspaceMembership.objects.select_related("workspace")
        .filter(workspace_id=workspace_id, user_id=user.id)
        .first()
    )
    if not member:
        raise errors.Forbidden("User is not a member of this workspace")
    return member


def resolve_webhook_workspace(*, workspace_id, token: str | None) -> Workspace:
    """
    Resolve the workspace for machine callers (lead webhooks) that carry a
    workspace token instead of a user session.
    """
    if not workspace_id:
        raise errors.WorkspaceNotSelected("Workspace id is required")

    workspace = Workspace.objects.filter(id=workspace_id).first()
    if not workspace:
        raise errors.NotFound("Workspace not found")

    if not token:
        raise errors.Unauthorized("Missing webhook token")

    if not hmac.compare_digest(str(workspace.webhook_token), str(token)):
        raise errors.Unauthorized("Invalid webhook token")

    return workspace


def require_workspace_member(request, *, roles=None):
    """
    View helper. Returns (workspace_id, membership, error_response); exactly one
    of membership / error_response is None.
    """
    try:
        member = resolve_workspace(user=getattr(request, "user", None), workspace_id=getattr(request, "workspace_id", None))
    except errors.CrmError as e:
        return getattr(request, "workspace_id", None), None, e.as_response()

    if roles is not None and member.role not in roles:
        return member.workspace_id, None, errors.Forbidden("Insufficient role").as_response()

    return member.workspace_id, member, None
