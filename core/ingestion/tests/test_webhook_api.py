import uuid

import pytest
from redis.exceptions import RedisError
from rest_framework.test import APIClient

from core.assignment.models import AssignmentRule
from core.common.errors import RateLimited
from core.leads.models import Activity, Lead
from core.whatsapp.models import WhatsAppTrigger

URL = "/v1/webhooks/lead"


def _post(workspace, body, token=None):
    client = APIClient()
    return client.post(
        URL,
        body,
        format="json",
        HTTP_X_WORKSPACE_ID=str(workspace.id),
        HTTP_X_WEBHOOK_TOKEN=token if token is not None else workspace.webhook_token,
    )


@pytest.mark.django_db
def test_webhook_auth_failures(workspace):
    client = APIClient()

    r = client.post(URL, {"phone": "9876543210"}, format="json", HTTP_X_WEBHOOK_TOKEN=workspace.webhook_token)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "WORKSPACE_REQUIRED"

    r = client.post(URL, {"phone": "9876543210"}, format="json", HTTP_X_WORKSPACE_ID=str(workspace.id))
    assert r.status_code == 401

    r = _post(workspace, {"phone": "9876543210"}, token="wh_wrong")
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "UNAUTHORIZED"

    r = client.post(URL, {"phone": "9876543210"}, format="json", HTTP_X_WORKSPACE_ID=str(uuid.uuid4()), HTTP_X_WEBHOOK_TOKEN="wh_x")
    assert r.status_code == 404

    r = client.post(URL, {"phone": "9876543210"}, format="json", HTTP_X_WORKSPACE_ID=str(uuid.uuid4()))
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "NOT_FOUND"

    assert Lead.objects.count() == 0


@pytest.mark.django_db
def test_webhook_without_phone_is_rejected_without_writes(workspace):
    r = _post(workspace, {"firstName": "Asha", "email": "asha@example.com"})

    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"
    assert Lead.objects.count() == 0
    assert Activity.objects.count() == 0


@pytest.mark.django_db
def test_webhook_rejects_non_object_body(workspace):
    r = _post(workspace, [{"phone": "9876543210"}])
    assert r.status_code == 400


@pytest.mark.django_db
def test_webhook_creates_then_updates(workspace, agent):
    AssignmentRule.objects.create(workspace=workspace, assignment_type=AssignmentRule.Type.SPECIFIC, assignee_user_id=agent.id)

    r1 = _post(workspace, {"name": "Asha Rao", "mobile": "+91 98765 43210", "source": "Facebook Lead Ad", "budget": "50000"})
    assert r1.status_code == 201
    ack = r1.json()
    assert ack["action"] == "created"
    assert ack["assigned"] is True
    assert ack["owner_user_id"] == agent.id
    assert ack["assignment_strategy"] == "SPECIFIC"

    lead = Lead.objects.get(id=ack["lead_id"])
    assert (lead.first_name, lead.last_name) == ("Asha", "Rao")
    assert lead.source == "FACEBOOK"
    assert lead.custom_fields == {"budget": "50000"}

    r2 = _post(workspace, {"phone": "09876543210", "email": "asha@example.com"})
    assert r2.status_code == 200
    assert r2.json()["action"] == "updated"
    assert r2.json()["lead_id"] == ack["lead_id"]
    assert Lead.objects.count() == 1

    lead.refresh_from_db()
    assert lead.email == "asha@example.com"
    assert lead.first_name == "Asha"
    assert lead.owner_user_id == agent.id


@pytest.mark.django_db
def test_webhook_unassigned_when_no_rule(workspace):
    r = _post(workspace, {"phone": "9876543210"})
    assert r.status_code == 201
    assert r.json()["assigned"] is False
    assert r.json()["owner_user_id"] is None


@pytest.mark.django_db
def test_resubmission_with_status_changes_status_and_fires_trigger(workspace, gateway):
    WhatsAppTrigger.objects.create(
        workspace=workspace,
        status="INTERESTED",
        campaign_name="interested_followup",
        template_params=["{{FirstName}}", "{{CourseInterested}}"],
        params_fallback={"CourseInterested": "our program"},
    )

    _post(workspace, {"firstName": "Asha", "phone": "9876543210"})
    r = _post(workspace, {"phone": "9876543210", "status": "INTERESTED"})
    assert r.status_code == 200

    lead = Lead.objects.get(workspace=workspace)
    assert lead.status == "INTERESTED"
    assert Activity.objects.filter(lead=lead, type=Activity.Type.STATUS_CHANGE).count() == 1
    assert [s["params"] for s in gateway.sent] == [["Asha", "our program"]]

    r = _post(workspace, {"phone": "9876543210", "status": "NOT_A_STATUS"})
    assert r.status_code == 200
    lead.refresh_from_db()
    assert lead.status == "INTERESTED"


@pytest.mark.django_db
def test_webhook_rate_limited(workspace, monkeypatch):
    def limited(**kwargs):
        raise RateLimited(retry_after_seconds=42)

    monkeypatch.setattr("core.ingestion.views.rate_limit_or_raise", limited)

    r = _post(workspace, {"phone": "9876543210"})
    assert r.status_code == 429
    assert r["Retry-After"] == "42"
    assert Lead.objects.count() == 0


@pytest.mark.django_db
def test_webhook_accepts_leads_when_limiter_is_down(workspace, monkeypatch):
    def redis_down(**kwargs):
        raise RedisError("connection refused")

    monkeypatch.setattr("core.ingestion.views.rate_limit_or_raise", redis_down)

    r = _post(workspace, {"phone": "9876543210"})
    assert r.status_code == 201


@pytest.mark.django_db
def test_webhook_logs(workspace, agent, client_for):
    _post(workspace, {"phone": "9876543210"})
    _post(workspace, {"phone": "9876543210", "city": "Pune"})

    r = client_for(agent, workspace).get("/v1/webhooks/lead/logs", {"limit": 5})
    assert r.status_code == 200
    subjects = [i["subject"] for i in r.json()["items"]]
    assert subjects == ["Lead Updated via Webhook", "Lead Created via Webhook"]


@pytest.mark.django_db
def test_webhook_describes_itself(workspace):
    r = APIClient().get(URL, HTTP_X_WORKSPACE_ID=str(workspace.id))
    assert r.status_code == 200
    assert r.json()["method"] == "POST"
