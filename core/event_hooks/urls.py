from django.urls import path

from core.event_hooks.api import (
    event_hook_endpoint_detail,
    event_hook_endpoint_rotate_secret,
    event_hook_endpoints,
)

urlpatterns = [
    path("event-hooks/endpoints", event_hook_endpoints, name="event-hook-endpoints"),
    path("event-hooks/endpoints/<uuid:endpoint_id>", event_hook_endpoint_detail, name="event-hook-endpoint-detail"),
    path("event-hooks/endpoints/<uuid:endpoint_id>/rotate-secret", event_hook_endpoint_rotate_secret, name="event-hook-endpoint-rotate-secret"),
]
