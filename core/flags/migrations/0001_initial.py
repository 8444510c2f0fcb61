import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("workspaces", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="FeatureFlag",
            fields=[
                ("key", models.CharField(max_length=128, primary_key=True, serialize=False)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("enabled_by_default", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name="WorkspaceFeatureFlag",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("is_enabled", models.BooleanField(default=False)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("key", models.ForeignKey(db_column="key", on_delete=django.db.models.deletion.CASCADE, to="flags.featureflag", to_field="key")),
                ("workspace", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="feature_flags", to="workspaces.workspace")),
            ],
            options={
                "indexes": [models.Index(fields=["workspace"], name="ws_flag_workspace_idx")],
                "constraints": [models.UniqueConstraint(fields=("workspace", "key"), name="uq_workspace_flag")],
            },
        ),
    ]
