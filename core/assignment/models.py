import uuid
from django.db import models
from django.utils import timezone


class AssignmentRule(models.Model):
    """
    Routing rule for new leads. Enabled rules are evaluated in
    (priority, created_at, id) order; the first whose filters match wins.
    """

    class Type(models.TextChoices):
        SPECIFIC = "SPECIFIC", "Specific user"
        ROUND_ROBIN = "ROUND_ROBIN", "Round robin"
        PERCENTAGE = "PERCENTAGE", "Percentage"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    workspace = models.ForeignKey("workspaces.Workspace", on_delete=models.CASCADE, related_name="assignment_rules")

    name = models.CharField(max_length=200, blank=True, default="")

    # null = match any
    source = models.CharField(max_length=64, null=True, blank=True)
    status = models.CharField(max_length=64, null=True, blank=True)

    assignment_type = models.CharField(max_length=16, choices=Type.choices)
    percentage = models.PositiveSmallIntegerField(null=True, blank=True)
    assignee_user_id = models.BigIntegerField(null=True, blank=True)
    # ordered rotation pool for ROUND_ROBIN; empty = [assignee_user_id]
    pool_user_ids = models.JSONField(default=list, blank=True)

    priority = models.IntegerField(default=0)
    is_enabled = models.BooleanField(default=True)

    created_by_user_id = models.BigIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "assignment_rules"
        indexes = [models.Index(fields=["workspace", "is_enabled", "priority"], name="rule_ws_enabled_prio_idx")]

    def rotation_pool(self) -> list[int]:
        pool = [int(u) for u in (self.pool_user_ids or [])]
        if not pool and self.assignee_user_id is not None:
            pool = [self.assignee_user_id]
        return pool


class RuleRotationState(models.Model):
    """
    Persisted per-rule counters. Owned by core.assignment.engine; only read
    and written there, under select_for_update.
    """
    rule = models.OneToOneField(AssignmentRule, on_delete=models.CASCADE, primary_key=True, related_name="rotation_state")

    # next ROUND_ROBIN slot; null until first use (then anchored at the assignee)
    rotation_index = models.PositiveIntegerField(null=True, blank=True)
    # PERCENTAGE calls seen so far
    percentage_counter = models.PositiveIntegerField(default=0)

    assignment_count = models.PositiveIntegerField(default=0)
    last_assigned_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "assignment_rule_rotation_state"
