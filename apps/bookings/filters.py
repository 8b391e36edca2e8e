"""FilterSet definitions for booking listings."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Booking


class BookingFilterSet(django_filters.FilterSet):
    """Filters for the booking list: status, court and date (exact or range)."""

    status = django_filters.ChoiceFilter(choices=Booking.Status.choices)
    payment_status = django_filters.ChoiceFilter(choices=Booking.PaymentStatus.choices)
    court = django_filters.UUIDFilter(field_name="court_id")
    booking_date = django_filters.DateFilter(field_name="booking_date")
    date_from = django_filters.DateFilter(field_name="booking_date", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="booking_date", lookup_expr="lte")

    class Meta:
        model = Booking
        fields = ["status", "payment_status", "court", "booking_date"]
