from rest_framework import serializers

from core.leads.models import Activity


class WebhookAckSerializer(serializers.Serializer):
    lead_id = serializers.UUIDField()
    action = serializers.ChoiceField(choices=["created", "updated"])
    assigned = serializers.BooleanField()
    owner_user_id = serializers.IntegerField(allow_null=True)
    assignment_strategy = serializers.CharField()


class WebhookLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = Activity
        fields = ["id", "lead_id", "subject", "message", "data_json", "created_at"]
