from django.urls import path

from core.whatsapp.api import whatsapp_trigger_detail, whatsapp_triggers

urlpatterns = [
    path("whatsapp/triggers", whatsapp_triggers, name="whatsapp-triggers"),
    path("whatsapp/triggers/<uuid:trigger_id>", whatsapp_trigger_detail, name="whatsapp-trigger-detail"),
]
