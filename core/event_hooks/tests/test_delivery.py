import hashlib
import hmac
import io
import json
import urllib.error

import pytest

from core.event_hooks.models import EventHookDelivery, EventHookEndpoint
from core.event_hooks.receivers import fan_out
from core.event_hooks.tasks import MAX_ATTEMPTS, deliver_event_hook_delivery, retry_due_event_hook_deliveries
from core.flags.models import WorkspaceFeatureFlag
from core.leads.status import change_lead_status


class _Response:
    def __init__(self, status=200):
        self.status = status

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def hooks_enabled(workspace):
    return WorkspaceFeatureFlag.objects.create(workspace=workspace, key_id="event_hooks_enabled", is_enabled=True)


@pytest.fixture
def endpoint(workspace):
    return EventHookEndpoint.objects.create(
        workspace_id=workspace.id,
        url="https://crm-mirror.example.com/hooks",
        secret="s3cret",
        events_json=["lead.status_changed"],
    )


@pytest.fixture
def sent(monkeypatch):
    requests = []

    def fake_urlopen(req, timeout):
        requests.append(req)
        return _Response(200)

    monkeypatch.setattr("urllib.request.urlopen", fake_urlopen)
    return requests


@pytest.mark.django_db
def test_status_change_is_delivered_signed(workspace, make_lead, hooks_enabled, endpoint, sent, django_capture_on_commit_callbacks):
    lead = make_lead(workspace)

    with django_capture_on_commit_callbacks(execute=True):
        change_lead_status(lead=lead, new_status="INTERESTED")

    delivery = EventHookDelivery.objects.get(endpoint=endpoint)
    assert delivery.event_type == "lead.status_changed"
    assert delivery.payload_json["old_status"] == "NEW_LEAD"
    assert delivery.payload_json["new_status"] == "INTERESTED"
    assert delivery.status == EventHookDelivery.STATUS_SENT
    assert delivery.attempts == 1

    req = sent[0]
    expected = hmac.new(b"s3cret", req.data, hashlib.sha256).hexdigest()
    assert req.get_header("X-event-signature") == expected
    assert req.get_header("X-event-type") == "lead.status_changed"
    assert json.loads(req.data)["data"]["lead_id"] == str(lead.id)


@pytest.mark.django_db
def test_fan_out_respects_flag_and_event_filter(workspace, endpoint):
    assert fan_out(workspace_id=workspace.id, event_type="lead.status_changed", payload={}) == []

    WorkspaceFeatureFlag.objects.create(workspace=workspace, key_id="event_hooks_enabled", is_enabled=True)
    assert fan_out(workspace_id=workspace.id, event_type="lead.assigned", payload={}) == []
    assert len(fan_out(workspace_id=workspace.id, event_type="lead.status_changed", payload={})) == 1


def _delivery(workspace, endpoint, **fields):
    return EventHookDelivery.objects.create(
        workspace_id=workspace.id,
        endpoint=endpoint,
        event_type="lead.status_changed",
        payload_json={"lead_id": "x"},
        **fields,
    )


@pytest.mark.django_db
def test_server_errors_are_retried_with_backoff(workspace, endpoint, monkeypatch):
    def server_error(req, timeout):
        raise urllib.error.HTTPError(req.full_url, 503, "Unavailable", hdrs=None, fp=io.BytesIO(b""))

    monkeypatch.setattr("urllib.request.urlopen", server_error)
    d = _delivery(workspace, endpoint)

    deliver_event_hook_delivery(str(d.id))

    d.refresh_from_db()
    assert d.status == EventHookDelivery.STATUS_PENDING
    assert d.attempts == 1
    assert d.last_http_status == 503
    assert d.next_attempt_at is not None


@pytest.mark.django_db
def test_client_errors_fail_immediately(workspace, endpoint, monkeypatch):
    def bad_request(req, timeout):
        raise urllib.error.HTTPError(req.full_url, 400, "Bad Request", hdrs=None, fp=io.BytesIO(b""))

    monkeypatch.setattr("urllib.request.urlopen", bad_request)
    d = _delivery(workspace, endpoint)

    deliver_event_hook_delivery(str(d.id))

    d.refresh_from_db()
    assert d.status == EventHookDelivery.STATUS_FAILED
    assert d.last_http_status == 400


@pytest.mark.django_db
def test_delivery_gives_up_after_max_attempts(workspace, endpoint, monkeypatch):
    def refused(req, timeout):
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr("urllib.request.urlopen", refused)
    d = _delivery(workspace, endpoint, attempts=MAX_ATTEMPTS - 1)

    deliver_event_hook_delivery(str(d.id))

    d.refresh_from_db()
    assert d.status == EventHookDelivery.STATUS_FAILED
    assert d.attempts == MAX_ATTEMPTS


@pytest.mark.django_db
def test_inactive_endpoint_fails_delivery(workspace, endpoint, sent):
    endpoint.is_active = False
    endpoint.save(update_fields=["is_active"])
    d = _delivery(workspace, endpoint)

    deliver_event_hook_delivery(str(d.id))

    d.refresh_from_db()
    assert d.status == EventHookDelivery.STATUS_FAILED
    assert sent == []


@pytest.mark.django_db
def test_retry_sweep_requeues_due_deliveries(workspace, endpoint, sent):
    _delivery(workspace, endpoint, attempts=1)
    _delivery(workspace, endpoint, attempts=0)

    assert retry_due_event_hook_deliveries() == 1
    assert len(sent) == 1
