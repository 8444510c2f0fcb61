import os
from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.local")

app = Celery("leadcrm")
app.config_from_object("django.conf:settings", namespace="CELERY")

# Import task modules explicitly so workers register them deterministically
app.conf.imports = (
    "core.event_hooks.tasks",
)

app.autodiscover_tasks()
