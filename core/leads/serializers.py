from rest_framework import serializers

from core.leads.models import Activity, Lead, LeadField, LeadStatusConfig


class LeadListSerializer(serializers.ModelSerializer):
    class Meta:
        model = Lead
        fields = [
            "id",
            "workspace_id",
            "first_name",
            "last_name",
            "email",
            "phone",
            "source",
            "status",
            "stage",
            "priority",
            "owner_user_id",
            "created_at",
            "updated_at",
        ]


class LeadDetailSerializer(serializers.ModelSerializer):
    class Meta:
        model = Lead
        fields = [
            "id",
            "workspace_id",
            "first_name",
            "last_name",
            "email",
            "phone",
            "phone_normalized",
            "source",
            "status",
            "stage",
            "priority",
            "city",
            "state",
            "country",
            "course_interested",
            "campaign",
            "tags",
            "owner_user_id",
            "created_by_user_id",
            "revenue",
            "custom_fields",
            "converted_at",
            "created_at",
            "updated_at",
        ]


class LeadCreateSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=120)
    last_name = serializers.CharField(required=False, allow_blank=True, max_length=120)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32)
    source = serializers.CharField(required=False, allow_blank=True, max_length=64)
    status = serializers.CharField(required=False, allow_blank=True, max_length=64)
    priority = serializers.ChoiceField(required=False, choices=Lead.Priority.choices)
    city = serializers.CharField(required=False, allow_blank=True, max_length=120)
    state = serializers.CharField(required=False, allow_blank=True, max_length=120)
    country = serializers.CharField(required=False, allow_blank=True, max_length=120)
    course_interested = serializers.CharField(required=False, allow_blank=True, max_length=200)
    campaign = serializers.CharField(required=False, allow_blank=True, max_length=200)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False)
    custom_fields = serializers.DictField(required=False)
    owner_user_id = serializers.IntegerField(required=False, allow_null=True)

    def validate_phone(self, value):
        value = value.strip()
        if not any(ch.isdigit() for ch in value):
            raise serializers.ValidationError("Phone must contain digits.")
        return value


class LeadUpdateSerializer(serializers.Serializer):
    # Only allow safe fields to be edited from dashboard
    first_name = serializers.CharField(required=False, allow_blank=True, max_length=120)
    last_name = serializers.CharField(required=False, allow_blank=True, max_length=120)
    email = serializers.EmailField(required=False, allow_blank=True)
    priority = serializers.ChoiceField(required=False, choices=Lead.Priority.choices)
    city = serializers.CharField(required=False, allow_blank=True, max_length=120)
    state = serializers.CharField(required=False, allow_blank=True, max_length=120)
    country = serializers.CharField(required=False, allow_blank=True, max_length=120)
    course_interested = serializers.CharField(required=False, allow_blank=True, max_length=200)
    campaign = serializers.CharField(required=False, allow_blank=True, max_length=200)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False)
    custom_fields = serializers.DictField(required=False)
    status = serializers.CharField(required=False, max_length=64)
    owner_user_id = serializers.IntegerField(required=False)


class LeadStatusChangeSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=64)


class ActivitySerializer(serializers.ModelSerializer):
    class Meta:
        model = Activity
        fields = [
            "id",
            "lead_id",
            "user_id",
            "type",
            "subject",
            "message",
            "data_json",
            "created_at",
        ]


class NoteCreateSerializer(serializers.Serializer):
    subject = serializers.CharField(required=False, allow_blank=True, max_length=255, default="Note")
    message = serializers.CharField(min_length=1, max_length=5000)


class LeadStatusConfigSerializer(serializers.ModelSerializer):
    class Meta:
        model = LeadStatusConfig
        fields = ["id", "name", "stage", "color", "is_default", "order"]
        read_only_fields = ["id"]

    def validate_name(self, value):
        value = value.strip().upper().replace(" ", "_")
        if not value:
            raise serializers.ValidationError("Name is required.")
        return value


class LeadFieldSerializer(serializers.ModelSerializer):
    options = serializers.ListField(source="options_json", child=serializers.CharField(max_length=100), required=False)

    class Meta:
        model = LeadField
        fields = ["id", "key", "label", "field_type", "options", "is_visible", "order"]
        read_only_fields = ["id"]

    def validate_key(self, value):
        value = value.strip()
        if not value or not value.replace("_", "").isalnum():
            raise serializers.ValidationError("Key must be alphanumeric (underscores allowed).")
        return value

    def validate(self, attrs):
        if attrs.get("field_type") == LeadField.FieldType.SELECT and not attrs.get("options_json"):
            raise serializers.ValidationError({"options": "SELECT fields need at least one option."})
        return attrs
