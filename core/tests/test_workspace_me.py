import pytest
from rest_framework.test import APIClient

from core.audit.models import AuditLog


@pytest.mark.django_db
def test_workspace_me_requires_auth(workspace):
    client = APIClient()
    r = client.get("/v1/workspaces/me", HTTP_X_WORKSPACE_ID=str(workspace.id))
    assert r.status_code == 401


@pytest.mark.django_db
def test_workspace_me_requires_workspace_header(owner):
    client = APIClient()
    client.force_authenticate(user=owner)
    r = client.get("/v1/workspaces/me")
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "WORKSPACE_REQUIRED"


@pytest.mark.django_db
def test_workspace_me_rejects_malformed_workspace_id(owner):
    client = APIClient()
    client.force_authenticate(user=owner)
    r = client.get("/v1/workspaces/me", HTTP_X_WORKSPACE_ID="not-a-uuid")
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "WORKSPACE_INVALID"


@pytest.mark.django_db
def test_workspace_me_forbidden_for_non_member(workspace, django_user_model, client_for):
    stranger = django_user_model.objects.create_user(username="stranger", password="pass12345")
    r = client_for(stranger, workspace).get("/v1/workspaces/me")
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "FORBIDDEN"


@pytest.mark.django_db
def test_workspace_me_returns_membership(workspace, owner, client_for):
    r = client_for(owner, workspace).get("/v1/workspaces/me")
    assert r.status_code == 200
    body = r.json()
    assert body["workspace"]["id"] == str(workspace.id)
    assert body["membership"]["role"] == "owner"


@pytest.mark.django_db
def test_rotate_webhook_token_owner_only(workspace, owner, agent, client_for):
    old_token = workspace.webhook_token

    r = client_for(agent, workspace).post("/v1/workspaces/me/webhook-token")
    assert r.status_code == 403

    r = client_for(owner, workspace).post("/v1/workspaces/me/webhook-token")
    assert r.status_code == 200
    new_token = r.json()["webhook_token"]
    assert new_token.startswith("wh_")
    assert new_token != old_token

    workspace.refresh_from_db()
    assert workspace.webhook_token == new_token
    assert AuditLog.objects.filter(workspace_id=workspace.id, action="workspace.webhook_token.rotated").count() == 1
