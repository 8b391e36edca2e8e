"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Booking


class SlotsQuerySerializer(serializers.Serializer):
    court_id = serializers.UUIDField()
    date = serializers.DateField()


class BookingCreateSerializer(serializers.Serializer):
    """Booking request. Window checks happen in the create handler."""

    court_id = serializers.UUIDField()
    booking_date = serializers.DateField()
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    notes = serializers.CharField(required=False, allow_blank=True, default="", max_length=1000)

    def validate(self, attrs):  # type: ignore
        if attrs["end_time"] <= attrs["start_time"]:
            raise serializers.ValidationError({"end_time": "End time must be after start time."})
        return attrs


class BookingStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Booking.Status.choices)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)


class PaymentStatusUpdateSerializer(serializers.Serializer):
    payment_status = serializers.ChoiceField(choices=Booking.PaymentStatus.choices)
    payment_method = serializers.CharField(required=False, allow_blank=True, max_length=50)


class BookingCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)


class PaymentPreferenceRequestSerializer(serializers.Serializer):
    """``amount`` is in minor units (cents); omitted means the outstanding amount."""

    amount = serializers.IntegerField(required=False, min_value=1)
    expires_at = serializers.DateTimeField(required=False)


class BookingSerializer(serializers.ModelSerializer):
    """Read-only representation of a booking."""

    court_id = serializers.UUIDField(read_only=True)
    court_name = serializers.ReadOnlyField(source="court.name")
    user_id = serializers.ReadOnlyField(source="user.id")
    start_time = serializers.TimeField(format="%H:%M", read_only=True)
    end_time = serializers.TimeField(format="%H:%M", read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "court_id",
            "court_name",
            "user_id",
            "booking_date",
            "start_time",
            "end_time",
            "duration_minutes",
            "total_price",
            "deposit_amount",
            "currency",
            "status",
            "payment_status",
            "payment_method",
            "notes",
            "expires_at",
            "cancellation_reason",
            "cancelled_by",
            "cancelled_at",
            "refund_granted",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
