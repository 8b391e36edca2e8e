"""Admin registration for courts."""

from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import Court


@admin.register(Court)
class CourtAdmin(admin.ModelAdmin):
    list_display = ("name", "base_price", "price_multiplier", "is_active", "updated_at")
    list_filter = ("is_active",)
    search_fields = ("name",)
    readonly_fields = ("created_at", "updated_at")
