from django.db import migrations


def add_flag(apps, schema_editor):
    FeatureFlag = apps.get_model("flags", "FeatureFlag")
    FeatureFlag.objects.update_or_create(
        key="event_hooks_enabled",
        defaults={
            "description": "Enable outgoing event hooks (lead assigned, status changed, WhatsApp dispatched)",
            "enabled_by_default": False,
        },
    )


def remove_flag(apps, schema_editor):
    FeatureFlag = apps.get_model("flags", "FeatureFlag")
    FeatureFlag.objects.filter(key="event_hooks_enabled").delete()


class Migration(migrations.Migration):
    dependencies = [
        ("flags", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(add_flag, remove_flag),
    ]
