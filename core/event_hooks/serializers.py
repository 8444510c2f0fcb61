from rest_framework import serializers

from core.event_hooks.models import EVENT_TYPES


def _clean_events(value):
    if value is None:
        return []
    cleaned = []
    for e in value:
        s = str(e).strip()
        if not s:
            continue
        if s not in EVENT_TYPES:
            raise serializers.ValidationError(f"Unknown event '{s}'. Allowed: {', '.join(EVENT_TYPES)}.")
        if s not in cleaned:
            cleaned.append(s)
    return cleaned


class EventHookEndpointOutSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    workspace_id = serializers.UUIDField()
    url = serializers.URLField()
    is_active = serializers.BooleanField()
    events = serializers.ListField(child=serializers.CharField(), required=False)
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


class EventHookEndpointCreateSerializer(serializers.Serializer):
    url = serializers.URLField()
    is_active = serializers.BooleanField(required=False, default=True)
    events = serializers.ListField(
        child=serializers.CharField(),
        required=False,
        default=list,
        allow_empty=True,
    )

    def validate_events(self, value):
        return _clean_events(value)


class EventHookEndpointUpdateSerializer(serializers.Serializer):
    url = serializers.URLField(required=False)
    is_active = serializers.BooleanField(required=False)
    events = serializers.ListField(
        child=serializers.CharField(),
        required=False,
        allow_empty=True,
    )

    def validate_events(self, value):
        return _clean_events(value)
