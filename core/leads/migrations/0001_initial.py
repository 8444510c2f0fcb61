import uuid
from decimal import Decimal

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
            name="LeadStatusConfig",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=64)),
                ("stage", models.CharField(choices=[("INITIAL", "Initial"), ("ACTIVE", "Active"), ("CLOSED", "Closed")], default="ACTIVE", max_length=16)),
                ("color", models.CharField(blank=True, default="", max_length=16)),
                ("is_default", models.BooleanField(default=False)),
                ("order", models.PositiveIntegerField(default=0)),
                ("is_deleted", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(default=timezone.now)),
                ("workspace", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lead_statuses", to="workspaces.workspace")),
            ],
            options={"db_table": "lead_status_configs"},
        ),
        migrations.AddConstraint(
            model_name="leadstatusconfig",
            constraint=models.UniqueConstraint(fields=("workspace", "name"), name="uq_status_workspace_name"),
        ),
        migrations.AddIndex(
            model_name="leadstatusconfig",
            index=models.Index(fields=["workspace", "stage", "order"], name="status_ws_stage_idx"),
        ),
        migrations.CreateModel(
            name="LeadField",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("key", models.CharField(max_length=64)),
                ("label", models.CharField(max_length=128)),
                ("field_type", models.CharField(choices=[("TEXT", "Text"), ("NUMBER", "Number"), ("SELECT", "Select"), ("DATE", "Date"), ("BOOLEAN", "Boolean"), ("EMAIL", "Email"), ("PHONE", "Phone")], default="TEXT", max_length=16)),
                ("options_json", models.JSONField(blank=True, default=list)),
                ("is_visible", models.BooleanField(default=True)),
                ("order", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(default=timezone.now)),
                ("workspace", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lead_fields", to="workspaces.workspace")),
            ],
            options={"db_table": "lead_fields"},
        ),
        migrations.AddConstraint(
            model_name="leadfield",
            constraint=models.UniqueConstraint(fields=("workspace", "key"), name="uq_lead_field_workspace_key"),
        ),
        migrations.CreateModel(
            name="Lead",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("first_name", models.CharField(blank=True, default="", max_length=120)),
                ("last_name", models.CharField(blank=True, default="", max_length=120)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("phone", models.CharField(max_length=32)),
                ("phone_normalized", models.CharField(max_length=16)),
                ("source", models.CharField(db_index=True, max_length=64)),
                ("status", models.CharField(max_length=64)),
                ("stage", models.CharField(choices=[("INITIAL", "Initial"), ("ACTIVE", "Active"), ("CLOSED", "Closed")], default="INITIAL", max_length=16)),
                ("priority", models.CharField(choices=[("LOW", "Low"), ("MEDIUM", "Medium"), ("HIGH", "High")], default="MEDIUM", max_length=8)),
                ("city", models.CharField(blank=True, default="", max_length=120)),
                ("state", models.CharField(blank=True, default="", max_length=120)),
                ("country", models.CharField(blank=True, default="", max_length=120)),
                ("course_interested", models.CharField(blank=True, default="", max_length=200)),
                ("campaign", models.CharField(blank=True, default="", max_length=200)),
                ("tags", models.JSONField(blank=True, default=list)),
                ("owner_user_id", models.BigIntegerField(blank=True, db_index=True, null=True)),
                ("created_by_user_id", models.BigIntegerField(blank=True, null=True)),
                ("revenue", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12)),
                ("custom_fields", models.JSONField(blank=True, default=dict)),
                ("converted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(db_index=True, default=timezone.now)),
                ("updated_at", models.DateTimeField(default=timezone.now)),
                ("workspace", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="leads", to="workspaces.workspace")),
            ],
            options={"db_table": "leads"},
        ),
        migrations.AddConstraint(
            model_name="lead",
            constraint=models.UniqueConstraint(fields=("workspace", "phone_normalized"), name="uq_lead_workspace_phone"),
        ),
        migrations.AddIndex(
            model_name="lead",
            index=models.Index(fields=["workspace", "created_at"], name="lead_ws_created_idx"),
        ),
        migrations.AddIndex(
            model_name="lead",
            index=models.Index(fields=["workspace", "status"], name="lead_ws_status_idx"),
        ),
        migrations.AddIndex(
            model_name="lead",
            index=models.Index(fields=["workspace", "source", "owner_user_id"], name="lead_ws_source_owner_idx"),
        ),
        migrations.CreateModel(
            name="Activity",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("user_id", models.BigIntegerField(blank=True, null=True)),
                ("type", models.CharField(choices=[("STATUS_CHANGE", "Status change"), ("SYSTEM", "System"), ("WHATSAPP", "WhatsApp"), ("LEAD_ASSIGNED", "Lead assigned"), ("NOTE", "Note"), ("EDIT", "Edit"), ("CALL", "Call"), ("EMAIL", "Email"), ("TASK", "Task")], db_index=True, max_length=32)),
                ("subject", models.CharField(blank=True, default="", max_length=255)),
                ("message", models.TextField(blank=True, default="")),
                ("data_json", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(db_index=True, default=timezone.now)),
                ("lead", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="activities", to="leads.lead")),
                ("workspace", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="activities", to="workspaces.workspace")),
            ],
            options={"db_table": "lead_activities", "ordering": ["-created_at", "-id"]},
        ),
        migrations.AddIndex(
            model_name="activity",
            index=models.Index(fields=["workspace", "lead", "created_at"], name="activity_ws_lead_idx"),
        ),
        migrations.AddIndex(
            model_name="activity",
            index=models.Index(fields=["workspace", "type", "created_at"], name="activity_ws_type_idx"),
        ),
    ]
