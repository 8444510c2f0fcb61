from django.db import models
from django.utils import timezone

class AuditLog(models.Model):
    """
    Configuration changes made by admins (rules, triggers, statuses, hooks).
    Lead-level history lives in leads.Activity instead.
    """
    id = models.BigAutoField(primary_key=True)

    workspace_id = models.UUIDField(db_index=True)
    actor_user_id = models.BigIntegerField(null=True, blank=True)

    action = models.CharField(max_length=64, db_index=True)
    entity_type = models.CharField(max_length=64)
    entity_id = models.CharField(max_length=64)

    data_json = models.JSONField(default=dict)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = "audit_logs"
