from django.urls import path

from core.assignment.api import (
    assignment_apply_by_source,
    assignment_rule_detail,
    assignment_rule_toggle,
    assignment_rules,
    assignment_sources,
)

urlpatterns = [
    path("assignment-rules", assignment_rules, name="assignment-rules"),
    path("assignment-rules/apply-by-source", assignment_apply_by_source, name="assignment-rules-apply-by-source"),
    path("assignment-rules/sources", assignment_sources, name="assignment-rules-sources"),
    path("assignment-rules/<uuid:rule_id>", assignment_rule_detail, name="assignment-rule-detail"),
    path("assignment-rules/<uuid:rule_id>/toggle", assignment_rule_toggle, name="assignment-rule-toggle"),
]
