import pytest
from django.db import DatabaseError

from core.common import errors
from core.leads.activities import list_for_lead, record_activity
from core.leads.models import Activity, Lead, LeadStatusConfig
from core.leads.status import DEFAULT_STATUSES, change_lead_status


@pytest.mark.django_db
def test_new_workspace_gets_default_statuses(workspace):
    names = list(LeadStatusConfig.objects.filter(workspace=workspace).order_by("order").values_list("name", flat=True))
    assert names == [name for name, _, _ in DEFAULT_STATUSES]
    assert LeadStatusConfig.objects.get(workspace=workspace, is_default=True).name == "NEW_LEAD"


@pytest.mark.django_db
def test_change_status_writes_stage_and_activity(workspace, owner, make_lead):
    lead = make_lead(workspace)

    change = change_lead_status(lead=lead, new_status="CONVERTED", actor_user_id=owner.id)

    assert change.old_status == "NEW_LEAD"
    assert change.new_status == "CONVERTED"
    lead.refresh_from_db()
    assert lead.status == "CONVERTED"
    assert lead.stage == "CLOSED"
    assert lead.converted_at is not None

    activity = Activity.objects.get(lead=lead, type=Activity.Type.STATUS_CHANGE)
    assert activity.message == "Status changed from NEW_LEAD to CONVERTED"
    assert activity.user_id == owner.id


@pytest.mark.django_db
def test_same_status_is_a_no_op(workspace, make_lead):
    lead = make_lead(workspace, status="INTERESTED")

    assert change_lead_status(lead=lead, new_status="INTERESTED") is None
    assert Activity.objects.filter(lead=lead).count() == 0


@pytest.mark.django_db
def test_unknown_status_is_rejected(workspace, make_lead):
    lead = make_lead(workspace)

    with pytest.raises(errors.ValidationError):
        change_lead_status(lead=lead, new_status="NOT_A_STATUS")

    lead.refresh_from_db()
    assert lead.status == "NEW_LEAD"


class _BrokenActivity:
    class objects:
        @staticmethod
        def create(**kwargs):
            raise DatabaseError("timeline table unavailable")


@pytest.mark.django_db
def test_failed_activity_write_does_not_undo_status_change(workspace, make_lead, monkeypatch):
    lead = make_lead(workspace)
    monkeypatch.setattr("core.leads.activities.Activity", _BrokenActivity)

    assert record_activity(lead=lead, activity_type=Activity.Type.NOTE, message="x") is None
    change_lead_status(lead=lead, new_status="INTERESTED")

    assert Lead.objects.get(id=lead.id).status == "INTERESTED"
    assert Activity.objects.filter(lead=lead).count() == 0


@pytest.mark.django_db
def test_timeline_is_newest_first(workspace, make_lead):
    lead = make_lead(workspace)
    for i in range(3):
        record_activity(lead=lead, activity_type=Activity.Type.NOTE, message=f"note {i}")
    change_lead_status(lead=lead, new_status="FOLLOW_UP")

    items = list(list_for_lead(workspace_id=workspace.id, lead_id=lead.id))
    assert [a.type for a in items][0] == Activity.Type.STATUS_CHANGE
    assert [a.message for a in items[1:]] == ["note 2", "note 1", "note 0"]

    notes = list(list_for_lead(workspace_id=workspace.id, lead_id=lead.id, activity_type=Activity.Type.NOTE, limit=2))
    assert [a.message for a in notes] == ["note 2", "note 1"]
