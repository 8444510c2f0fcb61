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
            name="AssignmentRule",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(blank=True, default="", max_length=200)),
                ("source", models.CharField(blank=True, max_length=64, null=True)),
                ("status", models.CharField(blank=True, max_length=64, null=True)),
                ("assignment_type", models.CharField(choices=[("SPECIFIC", "Specific user"), ("ROUND_ROBIN", "Round robin"), ("PERCENTAGE", "Percentage")], max_length=16)),
                ("percentage", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("assignee_user_id", models.BigIntegerField(blank=True, null=True)),
                ("pool_user_ids", models.JSONField(blank=True, default=list)),
                ("priority", models.IntegerField(default=0)),
                ("is_enabled", models.BooleanField(default=True)),
                ("created_by_user_id", models.BigIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=timezone.now)),
                ("updated_at", models.DateTimeField(default=timezone.now)),
                ("workspace", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="assignment_rules", to="workspaces.workspace")),
            ],
            options={"db_table": "assignment_rules"},
        ),
        migrations.AddIndex(
            model_name="assignmentrule",
            index=models.Index(fields=["workspace", "is_enabled", "priority"], name="rule_ws_enabled_prio_idx"),
        ),
        migrations.CreateModel(
            name="RuleRotationState",
            fields=[
                ("rule", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, primary_key=True, related_name="rotation_state", serialize=False, to="assignment.assignmentrule")),
                ("rotation_index", models.PositiveIntegerField(blank=True, null=True)),
                ("percentage_counter", models.PositiveIntegerField(default=0)),
                ("assignment_count", models.PositiveIntegerField(default=0)),
                ("last_assigned_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={"db_table": "assignment_rule_rotation_state"},
        ),
    ]
