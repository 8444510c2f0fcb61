import uuid
from django.db import models
from core.workspaces.models import Workspace

class FeatureFlag(models.Model):
    """
    Global flag catalog. Immutable-ish (change carefully).
    """
    key = models.CharField(max_length=128, primary_key=True)
    description = models.CharField(max_length=255, blank=True, default="")
    enabled_by_default = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.key

class WorkspaceFeatureFlag(models.Model):
    """
    Per-workspace override. Workspace isolation enforced by FK.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    workspace = models.ForeignKey(Workspace, on_delete=models.CASCADE, related_name="feature_flags")
    key = models.ForeignKey(FeatureFlag, to_field="key", db_column="key", on_delete=models.CASCADE)
    is_enabled = models.BooleanField(default=False)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["workspace", "key"], name="uq_workspace_flag"),
        ]
        indexes = [
            models.Index(fields=["workspace"], name="ws_flag_workspace_idx"),
        ]
