from rest_framework import serializers

from core.assignment.models import AssignmentRule
from core.iam.models import WorkspaceMembership
from core.leads.normalizer import normalize_source


class AssignmentRuleOutSerializer(serializers.ModelSerializer):
    assignment_count = serializers.SerializerMethodField()
    last_assigned_at = serializers.SerializerMethodField()

    class Meta:
        model = AssignmentRule
        fields = [
            "id",
            "workspace_id",
            "name",
            "source",
            "status",
            "assignment_type",
            "percentage",
            "assignee_user_id",
            "pool_user_ids",
            "priority",
            "is_enabled",
            "assignment_count",
            "last_assigned_at",
            "created_at",
            "updated_at",
        ]

    def _state(self, obj):
        # reverse one-to-one raises an AttributeError subclass when missing
        return getattr(obj, "rotation_state", None)

    def get_assignment_count(self, obj):
        state = self._state(obj)
        return state.assignment_count if state else 0

    def get_last_assigned_at(self, obj):
        state = self._state(obj)
        return state.last_assigned_at if state else None


class AssignmentRuleWriteSerializer(serializers.Serializer):
    """
    Used for create (partial=False) and PATCH (partial=True, validated
    against the existing rule passed as `instance`).
    Context: workspace_id.
    """
    name = serializers.CharField(required=False, allow_blank=True, max_length=200)
    source = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=64)
    status = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=64)
    assignment_type = serializers.ChoiceField(choices=AssignmentRule.Type.choices)
    percentage = serializers.IntegerField(required=False, allow_null=True, min_value=0, max_value=100)
    assignee_user_id = serializers.IntegerField(required=False, allow_null=True)
    pool_user_ids = serializers.ListField(child=serializers.IntegerField(), required=False, allow_empty=True, max_length=100)
    priority = serializers.IntegerField(required=False, default=0)
    is_enabled = serializers.BooleanField(required=False, default=True)

    def validate_source(self, value):
        return normalize_source(value) or None

    def validate_status(self, value):
        value = (value or "").strip()
        return value or None

    def validate_pool_user_ids(self, value):
        seen = []
        for user_id in value:
            if user_id not in seen:
                seen.append(user_id)
        return seen

    def validate(self, attrs):
        instance = self.instance

        def current(key, default=None):
            if key in attrs:
                return attrs[key]
            return getattr(instance, key, default) if instance is not None else default

        rule_type = current("assignment_type")
        percentage = current("percentage")
        assignee = current("assignee_user_id")
        pool = current("pool_user_ids", []) or []

        if rule_type == AssignmentRule.Type.PERCENTAGE and percentage is None:
            raise serializers.ValidationError({"percentage": "Required for PERCENTAGE rules (0-100)."})
        if rule_type in (AssignmentRule.Type.SPECIFIC, AssignmentRule.Type.PERCENTAGE) and assignee is None:
            raise serializers.ValidationError({"assignee_user_id": f"Required for {rule_type} rules."})
        if rule_type == AssignmentRule.Type.ROUND_ROBIN and assignee is None and not pool:
            raise serializers.ValidationError({"pool_user_ids": "ROUND_ROBIN needs an assignee or a non-empty pool."})

        referenced = set(pool)
        if assignee is not None:
            referenced.add(assignee)
        if referenced:
            members = set(
                WorkspaceMembership.objects.filter(
                    workspace_id=self.context["workspace_id"], user_id__in=referenced
                ).values_list("user_id", flat=True)
            )
            missing = sorted(referenced - members)
            if missing:
                raise serializers.ValidationError({"assignee_user_id": f"Not workspace members: {missing}"})

        return attrs


class ApplyBySourceSerializer(serializers.Serializer):
    source = serializers.CharField(max_length=64)
