import uuid
from decimal import Decimal

from django.db import models
from django.utils import timezone


class LeadStatusConfig(models.Model):
    """
    Workspace-defined pipeline status. Stage is display-only; any status may
    move to any other status.
    """

    class Stage(models.TextChoices):
        INITIAL = "INITIAL", "Initial"
        ACTIVE = "ACTIVE", "Active"
        CLOSED = "CLOSED", "Closed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    workspace = models.ForeignKey("workspaces.Workspace", on_delete=models.CASCADE, related_name="lead_statuses")

    name = models.CharField(max_length=64)
    stage = models.CharField(max_length=16, choices=Stage.choices, default=Stage.ACTIVE)
    color = models.CharField(max_length=16, blank=True, default="")
    is_default = models.BooleanField(default=False)
    order = models.PositiveIntegerField(default=0)
    is_deleted = models.BooleanField(default=False)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "lead_status_configs"
        constraints = [models.UniqueConstraint(fields=["workspace", "name"], name="uq_status_workspace_name")]
        indexes = [models.Index(fields=["workspace", "stage", "order"], name="status_ws_stage_idx")]

    def __str__(self) -> str:
        return self.name


class LeadField(models.Model):
    """
    Registry of custom lead fields; Lead.custom_fields values are coerced
    to field_type on write.
    """

    class FieldType(models.TextChoices):
        TEXT = "TEXT", "Text"
        NUMBER = "NUMBER", "Number"
        SELECT = "SELECT", "Select"
        DATE = "DATE", "Date"
        BOOLEAN = "BOOLEAN", "Boolean"
        EMAIL = "EMAIL", "Email"
        PHONE = "PHONE", "Phone"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    workspace = models.ForeignKey("workspaces.Workspace", on_delete=models.CASCADE, related_name="lead_fields")

    key = models.CharField(max_length=64)
    label = models.CharField(max_length=128)
    field_type = models.CharField(max_length=16, choices=FieldType.choices, default=FieldType.TEXT)
    options_json = models.JSONField(default=list, blank=True)
    is_visible = models.BooleanField(default=True)
    order = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "lead_fields"
        constraints = [models.UniqueConstraint(fields=["workspace", "key"], name="uq_lead_field_workspace_key")]


class Lead(models.Model):
    class Priority(models.TextChoices):
        LOW = "LOW", "Low"
        MEDIUM = "MEDIUM", "Medium"
        HIGH = "HIGH", "High"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    workspace = models.ForeignKey("workspaces.Workspace", on_delete=models.CASCADE, related_name="leads")

    first_name = models.CharField(max_length=120, blank=True, default="")
    last_name = models.CharField(max_length=120, blank=True, default="")
    email = models.EmailField(blank=True, default="")

    phone = models.CharField(max_length=32)
    # dedup key, see core.leads.normalizer.normalize_phone
    phone_normalized = models.CharField(max_length=16)

    source = models.CharField(max_length=64, db_index=True)
    status = models.CharField(max_length=64)
    stage = models.CharField(max_length=16, choices=LeadStatusConfig.Stage.choices, default=LeadStatusConfig.Stage.INITIAL)
    priority = models.CharField(max_length=8, choices=Priority.choices, default=Priority.MEDIUM)

    city = models.CharField(max_length=120, blank=True, default="")
    state = models.CharField(max_length=120, blank=True, default="")
    country = models.CharField(max_length=120, blank=True, default="")
    course_interested = models.CharField(max_length=200, blank=True, default="")
    campaign = models.CharField(max_length=200, blank=True, default="")
    tags = models.JSONField(default=list, blank=True)

    owner_user_id = models.BigIntegerField(null=True, blank=True, db_index=True)
    created_by_user_id = models.BigIntegerField(null=True, blank=True)

    revenue = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    custom_fields = models.JSONField(default=dict, blank=True)

    converted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "leads"
        constraints = [
            models.UniqueConstraint(fields=["workspace", "phone_normalized"], name="uq_lead_workspace_phone"),
        ]
        indexes = [
            models.Index(fields=["workspace", "created_at"], name="lead_ws_created_idx"),
            models.Index(fields=["workspace", "status"], name="lead_ws_status_idx"),
            models.Index(fields=["workspace", "source", "owner_user_id"], name="lead_ws_source_owner_idx"),
        ]

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p).strip()

    def touch(self):
        self.updated_at = timezone.now()
        self.save(update_fields=["updated_at"])


class Activity(models.Model):
    """
    Append-only lead timeline. Rows are never updated or deleted.
    """

    class Type(models.TextChoices):
        STATUS_CHANGE = "STATUS_CHANGE", "Status change"
        SYSTEM = "SYSTEM", "System"
        WHATSAPP = "WHATSAPP", "WhatsApp"
        LEAD_ASSIGNED = "LEAD_ASSIGNED", "Lead assigned"
        NOTE = "NOTE", "Note"
        EDIT = "EDIT", "Edit"
        CALL = "CALL", "Call"
        EMAIL = "EMAIL", "Email"
        TASK = "TASK", "Task"

    id = models.BigAutoField(primary_key=True)

    workspace = models.ForeignKey("workspaces.Workspace", on_delete=models.CASCADE, related_name="activities")
    lead = models.ForeignKey("leads.Lead", on_delete=models.CASCADE, related_name="activities")

    # null for system-generated entries
    user_id = models.BigIntegerField(null=True, blank=True)

    type = models.CharField(max_length=32, choices=Type.choices, db_index=True)
    subject = models.CharField(max_length=255, blank=True, default="")
    message = models.TextField(blank=True, default="")
    data_json = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = "lead_activities"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["workspace", "lead", "created_at"], name="activity_ws_lead_idx"),
            models.Index(fields=["workspace", "type", "created_at"], name="activity_ws_type_idx"),
        ]
