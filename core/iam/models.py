import uuid
from django.conf import settings
from django.db import models
from core.workspaces.models import Workspace


class WorkspaceMembership(models.Model):
    ROLE_OWNER = "owner"
    ROLE_ADMIN = "admin"
    ROLE_MANAGER = "manager"
    ROLE_AGENT = "agent"
    ROLE_VIEWER = "viewer"

    ROLE_CHOICES = [
        (ROLE_OWNER, "Owner"),
        (ROLE_ADMIN, "Admin"),
        (ROLE_MANAGER, "Manager"),
        (ROLE_AGENT, "Agent"),
        (ROLE_VIEWER, "Viewer"),
    ]

    # may manage rules, triggers, statuses and fields
    ELEVATED_ROLES = (ROLE_OWNER, ROLE_ADMIN, ROLE_MANAGER)
    # may edit leads
    EDITOR_ROLES = ELEVATED_ROLES + (ROLE_AGENT,)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    workspace = models.ForeignKey(Workspace, on_delete=models.CASCADE, related_name="memberships")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="workspace_memberships")
    role = models.CharField(max_length=16, choices=ROLE_CHOICES)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "workspace_memberships"
        constraints = [models.UniqueConstraint(fields=["workspace", "user"], name="uq_membership_workspace_user")]
        indexes = [models.Index(fields=["workspace", "role"], name="membership_ws_role_idx")]

    @property
    def is_elevated(self) -> bool:
        return self.role in self.ELEVATED_ROLES

    @property
    def can_edit(self) -> bool:
        return self.role in self.EDITOR_ROLES
