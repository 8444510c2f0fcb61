from django.urls import path
from .api import workspace_me, workspace_rotate_webhook_token

urlpatterns = [
    path("workspaces/me", workspace_me, name="workspace-me"),
    path("workspaces/me/webhook-token", workspace_rotate_webhook_token, name="workspace-webhook-token"),
]
