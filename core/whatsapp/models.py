import uuid
from django.db import models
from django.utils import timezone


class WhatsAppTrigger(models.Model):
    """
    Sends a templated WhatsApp message when a lead moves into `status`.
    At most one trigger per (workspace, status).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    workspace = models.ForeignKey("workspaces.Workspace", on_delete=models.CASCADE, related_name="whatsapp_triggers")

    status = models.CharField(max_length=64)
    is_enabled = models.BooleanField(default=True)

    campaign_name = models.CharField(max_length=200)
    # display only; also sent as the gateway userName/source
    source = models.CharField(max_length=120, blank=True, default="")

    # ordered placeholders, e.g. ["{{FirstName}}", "{{CourseInterested}}"]
    template_params = models.JSONField(default=list, blank=True)
    # placeholder name (without braces) -> default value
    params_fallback = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "whatsapp_triggers"
        constraints = [models.UniqueConstraint(fields=["workspace", "status"], name="uq_wa_trigger_workspace_status")]

    def touch(self):
        self.updated_at = timezone.now()
        self.save(update_fields=["updated_at"])
