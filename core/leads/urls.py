from django.urls import path
from core.leads.api import (
    lead_change_status,
    lead_fields,
    lead_statuses,
    lead_timeline,
    leads_detail,
    leads_list,
)

urlpatterns = [
    path("leads", leads_list, name="leads-list"),
    path("leads/<uuid:lead_id>", leads_detail, name="leads-detail"),
    path("leads/<uuid:lead_id>/status", lead_change_status, name="leads-status"),
    path("leads/<uuid:lead_id>/timeline", lead_timeline, name="leads-timeline"),

    path("lead-statuses", lead_statuses, name="lead-statuses"),
    path("lead-fields", lead_fields, name="lead-fields"),
]
