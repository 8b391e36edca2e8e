"""Admin registration for system settings."""

from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import SystemSetting


@admin.register(SystemSetting)
class SystemSettingAdmin(admin.ModelAdmin):
    list_display = ("key", "value", "is_public", "updated_at")
    list_filter = ("is_public",)
    search_fields = ("key", "description")
