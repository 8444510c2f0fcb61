import uuid

import django.db.models.deletion
from django.db import migrations, models
from django.utils import timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("workspaces", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="WhatsAppTrigger",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("status", models.CharField(max_length=64)),
                ("is_enabled", models.BooleanField(default=True)),
                ("campaign_name", models.CharField(max_length=200)),
                ("source", models.CharField(blank=True, default="", max_length=120)),
                ("template_params", models.JSONField(blank=True, default=list)),
                ("params_fallback", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(default=timezone.now)),
                ("updated_at", models.DateTimeField(default=timezone.now)),
                ("workspace", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="whatsapp_triggers", to="workspaces.workspace")),
            ],
            options={"db_table": "whatsapp_triggers"},
        ),
        migrations.AddConstraint(
            model_name="whatsapptrigger",
            constraint=models.UniqueConstraint(fields=("workspace", "status"), name="uq_wa_trigger_workspace_status"),
        ),
    ]
