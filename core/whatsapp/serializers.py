from rest_framework import serializers

from core.whatsapp.models import WhatsAppTrigger


class WhatsAppTriggerOutSerializer(serializers.ModelSerializer):
    class Meta:
        model = WhatsAppTrigger
        fields = [
            "id",
            "workspace_id",
            "status",
            "is_enabled",
            "campaign_name",
            "source",
            "template_params",
            "params_fallback",
            "created_at",
            "updated_at",
        ]


class WhatsAppTriggerWriteSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=64)
    is_enabled = serializers.BooleanField(required=False, default=True)
    campaign_name = serializers.CharField(max_length=200)
    source = serializers.CharField(required=False, allow_blank=True, max_length=120, default="")
    template_params = serializers.ListField(child=serializers.CharField(max_length=100), required=False, default=list, max_length=30)
    params_fallback = serializers.DictField(child=serializers.CharField(allow_blank=True, max_length=500), required=False, default=dict)

    def validate_status(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Status is required.")
        return value

    def validate_campaign_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Campaign name is required.")
        return value

    def validate_template_params(self, value):
        return [p.strip() for p in value if p.strip()]

    def validate_params_fallback(self, value):
        # keys are stored without braces to match resolved placeholder names
        return {str(k).replace("{", "").replace("}", "").strip(): v for k, v in value.items() if str(k).strip()}
