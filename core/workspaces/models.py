import secrets
import uuid
from django.db import models


def generate_webhook_token() -> str:
    return "wh_" + secrets.token_urlsafe(32)


class Workspace(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    status = models.CharField(max_length=32, default="active")

    # shared secret for inbound lead webhooks (x-webhook-token)
    webhook_token = models.CharField(max_length=128, default=generate_webhook_token)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "workspaces"
        indexes = [models.Index(fields=["status"], name="workspaces_status_idx")]

    def __str__(self) -> str:
        return self.name

    def rotate_webhook_token(self) -> str:
        self.webhook_token = generate_webhook_token()
        self.save(update_fields=["webhook_token"])
        return self.webhook_token
