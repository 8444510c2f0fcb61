import secrets

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.audit.utils import audit
from core.common import errors
from core.common.flags import is_enabled
from core.event_hooks.models import EventHookEndpoint
from core.event_hooks.receivers import FLAG_KEY
from core.event_hooks.serializers import (
    EventHookEndpointCreateSerializer,
    EventHookEndpointOutSerializer,
    EventHookEndpointUpdateSerializer,
)
from core.iam.models import WorkspaceMembership
from core.workspaces.resolver import require_workspace_member

WRITERS = (WorkspaceMembership.ROLE_OWNER, WorkspaceMembership.ROLE_ADMIN)


def _require_event_hooks_enabled(workspace_id):
    if not is_enabled(str(workspace_id), FLAG_KEY):
        return Response(
            {"error": {"code": "FEATURE_DISABLED", "message": "Event hooks are not enabled for this workspace", "details": {}}},
            status=403,
        )
    return None


def _as_out(endpoint: EventHookEndpoint):
    return {
        "id": endpoint.id,
        "workspace_id": endpoint.workspace_id,
        "url": endpoint.url,
        "is_active": endpoint.is_active,
        "events": endpoint.events_json or [],
        "created_at": endpoint.created_at,
        "updated_at": endpoint.updated_at,
    }


def _forbidden():
    return errors.Forbidden("Only owner/admin can manage event hooks").as_response()


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def event_hook_endpoints(request):
    """
    GET  /v1/event-hooks/endpoints
    POST /v1/event-hooks/endpoints
    Headers: Authorization, X-Workspace-Id
    """
    workspace_id, member, err = require_workspace_member(request)
    if err:
        return err

    gate = _require_event_hooks_enabled(workspace_id)
    if gate:
        return gate

    if request.method == "GET":
        qs = EventHookEndpoint.objects.filter(workspace_id=workspace_id).order_by("-created_at")
        items = [_as_out(x) for x in qs]
        return Response({"items": EventHookEndpointOutSerializer(items, many=True).data})

    # POST create
    if member.role not in WRITERS:
        return _forbidden()

    s = EventHookEndpointCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = s.validated_data

    secret_value = secrets.token_urlsafe(32)

    ep = EventHookEndpoint.objects.create(
        workspace_id=workspace_id,
        url=data["url"],
        is_active=data.get("is_active", True),
        events_json=data.get("events", []) or [],
        secret=secret_value,
    )
    audit(workspace_id, "event_hook.created", "event_hook_endpoint", ep.id, actor_user_id=request.user.id, data={"url": ep.url})

    # Return secret only on create
    out = EventHookEndpointOutSerializer(_as_out(ep)).data
    out["secret"] = secret_value

    return Response({"endpoint": out}, status=201)


@api_view(["GET", "PATCH"])
@permission_classes([IsAuthenticated])
def event_hook_endpoint_detail(request, endpoint_id):
    """
    GET   /v1/event-hooks/endpoints/{endpoint_id}
    PATCH /v1/event-hooks/endpoints/{endpoint_id}
    """
    workspace_id, member, err = require_workspace_member(request)
    if err:
        return err

    gate = _require_event_hooks_enabled(workspace_id)
    if gate:
        return gate

    ep = EventHookEndpoint.objects.filter(id=endpoint_id, workspace_id=workspace_id).first()
    if not ep:
        return errors.NotFound("Event hook endpoint not found").as_response()

    if request.method == "GET":
        return Response({"endpoint": EventHookEndpointOutSerializer(_as_out(ep)).data})

    # PATCH
    if member.role not in WRITERS:
        return _forbidden()

    s = EventHookEndpointUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = s.validated_data

    changed = False
    if "url" in data:
        ep.url = data["url"]
        changed = True
    if "is_active" in data:
        ep.is_active = data["is_active"]
        changed = True
    if "events" in data:
        ep.events_json = data["events"] or []
        changed = True

    if changed:
        ep.save(update_fields=["url", "is_active", "events_json"])
        ep.touch()
        audit(workspace_id, "event_hook.updated", "event_hook_endpoint", ep.id, actor_user_id=request.user.id, data={"fields": sorted(data.keys())})

    return Response({"endpoint": EventHookEndpointOutSerializer(_as_out(ep)).data})


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def event_hook_endpoint_rotate_secret(request, endpoint_id):
    """
    POST /v1/event-hooks/endpoints/{endpoint_id}/rotate-secret
    Returns new secret once.
    """
    workspace_id, member, err = require_workspace_member(request)
    if err:
        return err

    gate = _require_event_hooks_enabled(workspace_id)
    if gate:
        return gate

    if member.role not in WRITERS:
        return _forbidden()

    ep = EventHookEndpoint.objects.filter(id=endpoint_id, workspace_id=workspace_id).first()
    if not ep:
        return errors.NotFound("Event hook endpoint not found").as_response()

    new_secret = secrets.token_urlsafe(32)
    ep.secret = new_secret
    ep.save(update_fields=["secret"])
    ep.touch()
    audit(workspace_id, "event_hook.secret_rotated", "event_hook_endpoint", ep.id, actor_user_id=request.user.id)

    return Response({"endpoint_id": str(ep.id), "secret": new_secret}, status=200)
