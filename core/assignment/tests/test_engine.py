import os
import threading
import uuid
from datetime import timedelta

import pytest
from django.db import OperationalError, connections
from django.utils import timezone

from core.assignment import engine
from core.assignment.engine import assign_lead, assign_unassigned_by_source, select_rule, set_owner
from core.assignment.models import AssignmentRule, RuleRotationState
from core.common import errors
from core.iam.models import WorkspaceMembership
from core.leads.models import Activity, Lead

Rule = AssignmentRule.Type


def _rule(workspace, rule_type, **fields):
    return AssignmentRule.objects.create(workspace=workspace, assignment_type=rule_type, **fields)


def test_select_rule_orders_by_priority_then_age():
    now = timezone.now()
    older = AssignmentRule(id=uuid.uuid4(), priority=1, created_at=now - timedelta(days=1), is_enabled=True)
    newer = AssignmentRule(id=uuid.uuid4(), priority=1, created_at=now, is_enabled=True)
    first = AssignmentRule(id=uuid.uuid4(), priority=0, created_at=now, is_enabled=True, source="FACEBOOK")
    disabled = AssignmentRule(id=uuid.uuid4(), priority=-5, created_at=now, is_enabled=False)

    rules = [newer, disabled, older, first]
    assert select_rule(rules, source="FACEBOOK", status="NEW_LEAD") is first
    assert select_rule(rules, source="WEBSITE", status="NEW_LEAD") is older


def test_select_rule_status_filter():
    now = timezone.now()
    only_interested = AssignmentRule(id=uuid.uuid4(), priority=0, created_at=now, is_enabled=True, status="INTERESTED")
    assert select_rule([only_interested], source="WEBHOOK", status="NEW_LEAD") is None
    assert select_rule([only_interested], source="WEBHOOK", status="INTERESTED") is only_interested


@pytest.mark.django_db
def test_specific_rule_assigns_and_logs(workspace, owner, make_lead):
    rule = _rule(workspace, Rule.SPECIFIC, assignee_user_id=owner.id)
    lead = make_lead(workspace)

    outcome = assign_lead(lead=lead)

    assert outcome.assigned is True
    assert outcome.rule_id == rule.id
    assert outcome.strategy == "SPECIFIC"
    assert Lead.objects.get(id=lead.id).owner_user_id == owner.id

    activity = Activity.objects.get(lead=lead, type=Activity.Type.LEAD_ASSIGNED)
    assert activity.message == "Lead assigned to Olivia Owner"

    state = RuleRotationState.objects.get(rule=rule)
    assert state.assignment_count == 1
    assert state.last_assigned_at is not None


@pytest.mark.django_db
def test_source_specific_rule_wins_over_catch_all(workspace, owner, agent, make_lead):
    _rule(workspace, Rule.SPECIFIC, assignee_user_id=agent.id, priority=10)
    _rule(workspace, Rule.SPECIFIC, assignee_user_id=owner.id, priority=1, source="FACEBOOK")

    fb = make_lead(workspace, source="FACEBOOK")
    web = make_lead(workspace, source="WEBSITE")

    assert assign_lead(lead=fb).owner_user_id == owner.id
    assert assign_lead(lead=web).owner_user_id == agent.id


@pytest.mark.django_db
def test_round_robin_cycles_through_pool_in_order(workspace, make_member, make_lead):
    u1 = make_member(workspace, "u1")
    u2 = make_member(workspace, "u2")
    u3 = make_member(workspace, "u3")
    _rule(workspace, Rule.ROUND_ROBIN, assignee_user_id=u1.id, pool_user_ids=[u1.id, u2.id, u3.id])

    owners = [assign_lead(lead=make_lead(workspace)).owner_user_id for _ in range(9)]

    assert owners == [u1.id, u2.id, u3.id] * 3


@pytest.mark.django_db
def test_round_robin_starts_at_assignee(workspace, make_member, make_lead):
    u1 = make_member(workspace, "u1")
    u2 = make_member(workspace, "u2")
    _rule(workspace, Rule.ROUND_ROBIN, assignee_user_id=u2.id, pool_user_ids=[u1.id, u2.id])

    owners = [assign_lead(lead=make_lead(workspace)).owner_user_id for _ in range(3)]

    assert owners == [u2.id, u1.id, u2.id]


@pytest.mark.django_db
def test_percentage_rule_assigns_exact_share(workspace, agent, make_lead):
    rule = _rule(workspace, Rule.PERCENTAGE, assignee_user_id=agent.id, percentage=25)

    outcomes = [assign_lead(lead=make_lead(workspace)) for _ in range(100)]

    assert sum(1 for o in outcomes if o.assigned) == 25
    assert Lead.objects.filter(workspace=workspace, owner_user_id=agent.id).count() == 25
    assert Lead.objects.filter(workspace=workspace, owner_user_id__isnull=True).count() == 75
    assert RuleRotationState.objects.get(rule=rule).percentage_counter == 100


@pytest.mark.django_db
def test_no_matching_rule_leaves_lead_unassigned(workspace, owner, make_lead):
    _rule(workspace, Rule.SPECIFIC, assignee_user_id=owner.id, source="FACEBOOK")
    lead = make_lead(workspace, source="WEBSITE")

    outcome = assign_lead(lead=lead)

    assert outcome.assigned is False
    assert Lead.objects.get(id=lead.id).owner_user_id is None
    assert not Activity.objects.filter(lead=lead, type=Activity.Type.LEAD_ASSIGNED).exists()


@pytest.mark.django_db
def test_inactive_user_consumes_slot_without_stalling_rotation(workspace, make_member, make_lead):
    gone = make_member(workspace, "gone", is_active=False)
    u2 = make_member(workspace, "u2")
    _rule(workspace, Rule.ROUND_ROBIN, assignee_user_id=gone.id, pool_user_ids=[gone.id, u2.id])

    first = assign_lead(lead=make_lead(workspace))
    second = assign_lead(lead=make_lead(workspace))

    assert first.assigned is False
    assert second.assigned is True
    assert second.owner_user_id == u2.id


@pytest.mark.django_db
def test_removed_member_is_not_assigned(workspace, agent, make_lead):
    _rule(workspace, Rule.SPECIFIC, assignee_user_id=agent.id)
    WorkspaceMembership.objects.filter(workspace=workspace, user=agent).delete()
    lead = make_lead(workspace)

    assert assign_lead(lead=lead).assigned is False
    assert Lead.objects.get(id=lead.id).owner_user_id is None


@pytest.mark.django_db
def test_already_assigned_lead_is_left_alone(workspace, owner, agent, make_lead):
    _rule(workspace, Rule.SPECIFIC, assignee_user_id=owner.id)
    lead = make_lead(workspace, owner_user_id=agent.id)

    outcome = assign_lead(lead=lead)

    assert outcome.assigned is False
    assert outcome.reason == "already_assigned"
    assert Lead.objects.get(id=lead.id).owner_user_id == agent.id


@pytest.mark.django_db
def test_lock_conflicts_are_retried(workspace, owner, make_lead, monkeypatch, settings):
    settings.ASSIGNMENT_MAX_ATTEMPTS = 3
    _rule(workspace, Rule.SPECIFIC, assignee_user_id=owner.id)
    lead = make_lead(workspace)

    real = engine._assign_once
    calls = {"n": 0}

    def flaky(lead, actor_user_id):
        calls["n"] += 1
        if calls["n"] < 3:
            raise OperationalError("could not obtain lock")
        return real(lead, actor_user_id)

    monkeypatch.setattr(engine, "_assign_once", flaky)

    assert assign_lead(lead=lead).assigned is True
    assert calls["n"] == 3


@pytest.mark.django_db
def test_exhausted_retries_leave_lead_unassigned(workspace, make_lead, monkeypatch, settings):
    settings.ASSIGNMENT_MAX_ATTEMPTS = 2
    lead = make_lead(workspace)

    def always_locked(lead, actor_user_id):
        raise OperationalError("could not obtain lock")

    monkeypatch.setattr(engine, "_assign_once", always_locked)

    outcome = assign_lead(lead=lead)
    assert outcome.assigned is False
    assert outcome.reason == "concurrency_conflict"


@pytest.mark.django_db
def test_set_owner_requires_active_member(workspace, agent, make_lead, django_user_model):
    lead = make_lead(workspace)
    outsider = django_user_model.objects.create_user(username="outsider", password="pass12345")

    with pytest.raises(errors.ValidationError):
        set_owner(lead=lead, owner_user_id=outsider.id)

    outcome = set_owner(lead=lead, owner_user_id=agent.id)
    assert outcome.strategy == "MANUAL"
    assert Lead.objects.get(id=lead.id).owner_user_id == agent.id

    again = set_owner(lead=lead, owner_user_id=agent.id)
    assert again.assigned is False
    assert Activity.objects.filter(lead=lead, type=Activity.Type.LEAD_ASSIGNED).count() == 1


@pytest.mark.django_db
def test_apply_by_source_only_touches_unassigned_leads_of_that_source(workspace, owner, agent, make_lead):
    _rule(workspace, Rule.SPECIFIC, assignee_user_id=agent.id)
    make_lead(workspace, source="FACEBOOK")
    make_lead(workspace, source="FACEBOOK")
    make_lead(workspace, source="FACEBOOK", owner_user_id=owner.id)
    other = make_lead(workspace, source="WEBSITE")

    result = assign_unassigned_by_source(workspace_id=workspace.id, source="fb")

    assert result == {"source": "FACEBOOK", "processed": 2, "assigned": 2}
    assert Lead.objects.filter(source="FACEBOOK", owner_user_id=agent.id).count() == 2
    assert Lead.objects.get(id=other.id).owner_user_id is None

    with pytest.raises(errors.ValidationError):
        assign_unassigned_by_source(workspace_id=workspace.id, source="  ")


@pytest.mark.skipif(os.getenv("TEST_DB_ENGINE", "sqlite") != "postgres", reason="needs Postgres row locks")
@pytest.mark.django_db(transaction=True)
def test_round_robin_is_fair_under_concurrency(workspace, make_member, make_lead):
    pool = [make_member(workspace, f"rr{i}") for i in range(3)]
    _rule(workspace, Rule.ROUND_ROBIN, assignee_user_id=pool[0].id, pool_user_ids=[u.id for u in pool])
    leads = [make_lead(workspace) for _ in range(30)]

    def worker(lead):
        try:
            assign_lead(lead=lead)
        finally:
            connections.close_all()

    threads = [threading.Thread(target=worker, args=(lead,)) for lead in leads]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    for user in pool:
        assert Lead.objects.filter(workspace=workspace, owner_user_id=user.id).count() == 10


@pytest.mark.django_db
def test_priority_rule_for_source_then_catch_all(workspace, make_member, make_lead):
    a = make_member(workspace, "a")
    b = make_member(workspace, "b")
    _rule(workspace, Rule.SPECIFIC, assignee_user_id=a.id, priority=1, source="FACEBOOK")
    _rule(workspace, Rule.SPECIFIC, assignee_user_id=b.id, priority=2)

    assert assign_lead(lead=make_lead(workspace, source="FACEBOOK")).owner_user_id == a.id
    assert assign_lead(lead=make_lead(workspace, source="GOOGLE_ADS")).owner_user_id == b.id
