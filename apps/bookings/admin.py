"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """Read-only: bookings change only through the booking API and tasks."""

    list_display = (
        "id",
        "court",
        "user",
        "booking_date",
        "start_time",
        "end_time",
        "status",
        "payment_status",
        "total_price",
        "created_at",
    )
    list_filter = ("status", "payment_status", "booking_date", "court")
    search_fields = ("id", "court__name", "user__username", "user__email")
    date_hierarchy = "booking_date"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
