import pytest

from core.audit.models import AuditLog
from core.event_hooks.models import EventHookEndpoint
from core.flags.models import WorkspaceFeatureFlag


@pytest.fixture
def hooks_enabled(workspace):
    return WorkspaceFeatureFlag.objects.create(workspace=workspace, key_id="event_hooks_enabled", is_enabled=True)


@pytest.mark.django_db
def test_event_hooks_require_flag(workspace, owner, client_for):
    r = client_for(owner, workspace).get("/v1/event-hooks/endpoints")
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "FEATURE_DISABLED"


@pytest.mark.django_db
def test_event_hook_crud_and_rotate_secret(workspace, owner, viewer, hooks_enabled, client_for):
    api = client_for(owner, workspace)

    r = api.post("/v1/event-hooks/endpoints", {"url": "https://example.com/hooks", "events": ["lead.assigned"]}, format="json")
    assert r.status_code == 201
    endpoint = r.json()["endpoint"]
    assert endpoint["secret"]
    assert endpoint["events"] == ["lead.assigned"]

    r = api.get("/v1/event-hooks/endpoints")
    assert "secret" not in r.json()["items"][0]

    r = client_for(viewer, workspace).post("/v1/event-hooks/endpoints", {"url": "https://example.com/x"}, format="json")
    assert r.status_code == 403

    r = api.post("/v1/event-hooks/endpoints", {"url": "https://example.com/x", "events": ["lead.deleted"]}, format="json")
    assert r.status_code == 400

    r = api.patch(f"/v1/event-hooks/endpoints/{endpoint['id']}", {"is_active": False}, format="json")
    assert r.status_code == 200
    assert r.json()["endpoint"]["is_active"] is False

    old_secret = EventHookEndpoint.objects.get(id=endpoint["id"]).secret
    r = api.post(f"/v1/event-hooks/endpoints/{endpoint['id']}/rotate-secret")
    assert r.status_code == 200
    assert r.json()["secret"] != old_secret

    actions = set(AuditLog.objects.filter(workspace_id=workspace.id).values_list("action", flat=True))
    assert {"event_hook.created", "event_hook.updated", "event_hook.secret_rotated"} <= actions
