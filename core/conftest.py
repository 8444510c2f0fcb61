import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from core.iam.models import WorkspaceMembership
from core.leads.models import Lead
from core.whatsapp.gateway import GatewayError, GatewayResult
from core.workspaces.models import Workspace

User = get_user_model()


@pytest.fixture(autouse=True)
def no_flag_cache(monkeypatch):
    # entitlements are read straight from the database in tests
    monkeypatch.setattr("core.common.flags._redis", lambda: None)


@pytest.fixture
def workspace(db):
    # statuses are seeded by the post_save receiver
    return Workspace.objects.create(name="Acme Academy")


@pytest.fixture
def make_member(db):
    def _make(workspace, username, role=WorkspaceMembership.ROLE_AGENT, **user_fields):
        user = User.objects.create_user(username=username, email=f"{username}@acme.com", password="pass12345", **user_fields)
        WorkspaceMembership.objects.create(workspace=workspace, user=user, role=role)
        return user
    return _make


@pytest.fixture
def owner(workspace, make_member):
    return make_member(workspace, "owner", WorkspaceMembership.ROLE_OWNER, first_name="Olivia", last_name="Owner")


@pytest.fixture
def agent(workspace, make_member):
    return make_member(workspace, "agent", WorkspaceMembership.ROLE_AGENT)


@pytest.fixture
def viewer(workspace, make_member):
    return make_member(workspace, "viewer", WorkspaceMembership.ROLE_VIEWER)


@pytest.fixture
def client_for():
    def _client(user, workspace):
        api = APIClient()
        api.force_authenticate(user=user)
        api.credentials(HTTP_X_WORKSPACE_ID=str(workspace.id))
        return api
    return _client


@pytest.fixture
def make_lead(db):
    counter = {"n": 0}

    def _make(workspace, *, source="WEBHOOK", status="NEW_LEAD", phone=None, **fields):
        counter["n"] += 1
        phone = phone or f"98{counter['n']:08d}"
        return Lead.objects.create(
            workspace=workspace,
            first_name=fields.pop("first_name", f"Lead{counter['n']}"),
            phone=phone,
            phone_normalized=phone[-10:],
            source=source,
            status=status,
            **fields,
        )
    return _make


class RecordingGateway:
    def __init__(self):
        self.sent = []
        self.fail_with = None

    def send_template_message(self, *, destination, campaign_name, params, user_name):
        self.sent.append({
            "destination": destination,
            "campaign_name": campaign_name,
            "params": list(params),
            "user_name": user_name,
        })
        if self.fail_with:
            raise GatewayError(self.fail_with)
        return GatewayResult(delivery_id=f"msg-{len(self.sent)}")


@pytest.fixture
def gateway(monkeypatch):
    gw = RecordingGateway()
    monkeypatch.setattr("core.whatsapp.dispatcher.get_gateway", lambda: gw)
    return gw
