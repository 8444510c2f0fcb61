from django.contrib import admin
from .models import FeatureFlag, WorkspaceFeatureFlag

@admin.register(FeatureFlag)
class FeatureFlagAdmin(admin.ModelAdmin):
    list_display = ("key", "enabled_by_default", "description", "created_at")
    search_fields = ("key", "description")

@admin.register(WorkspaceFeatureFlag)
class WorkspaceFeatureFlagAdmin(admin.ModelAdmin):
    list_display = ("workspace", "key", "is_enabled", "updated_at")
    list_filter = ("is_enabled",)
    search_fields = ("workspace__name", "key__key")
