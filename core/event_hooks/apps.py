from django.apps import AppConfig


class EventHooksConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core.event_hooks"

    def ready(self):
        # register signals
        from . import receivers  # noqa: F401
