from django.apps import AppConfig


class WhatsAppConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core.whatsapp"
    label = "whatsapp"

    def ready(self):
        # register signals
        from . import receivers  # noqa: F401
