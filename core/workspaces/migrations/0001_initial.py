import uuid

from django.db import migrations, models

import core.workspaces.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Workspace",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("status", models.CharField(default="active", max_length=32)),
                ("webhook_token", models.CharField(default=core.workspaces.models.generate_webhook_token, max_length=128)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "workspaces",
                "indexes": [models.Index(fields=["status"], name="workspaces_status_idx")],
            },
        ),
    ]
