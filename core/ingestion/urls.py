from django.urls import path

from core.ingestion.views import LeadWebhookView, webhook_logs

urlpatterns = [
    path("webhooks/lead", LeadWebhookView.as_view(), name="webhooks-lead"),
    path("webhooks/lead/logs", webhook_logs, name="webhooks-lead-logs"),
]
