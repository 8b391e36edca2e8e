"""Booking persistence model."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Booking(models.Model):
    """Reservation of a court window. Rows are never deleted; CANCELLED is kept for history."""

    class Status(models.TextChoices):
        PENDING = "PENDING", _("Pending payment")
        CONFIRMED = "CONFIRMED", _("Confirmed")
        ACTIVE = "ACTIVE", _("In progress")
        COMPLETED = "COMPLETED", _("Completed")
        CANCELLED = "CANCELLED", _("Cancelled")

    class PaymentStatus(models.TextChoices):
        PENDING = "PENDING", _("Awaiting payment")
        DEPOSIT_PAID = "DEPOSIT_PAID", _("Deposit paid")
        FULLY_PAID = "FULLY_PAID", _("Fully paid")
        FAILED = "FAILED", _("Payment failed")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    court = models.ForeignKey(
        "courts.Court",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="court_bookings",
    )
    booking_date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    duration_minutes = models.PositiveIntegerField()
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    deposit_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="ARS")
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(
        max_length=16,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    payment_method = models.CharField(max_length=50, blank=True, null=True)
    notes = models.TextField(blank=True)
    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_("Unpaid bookings are cancelled by the system after this moment."),
    )
    cancellation_reason = models.CharField(max_length=255, blank=True, null=True)
    cancelled_by = models.CharField(max_length=64, blank=True, null=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    refund_granted = models.BooleanField(null=True, blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-booking_date", "-start_time"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F("start_time")),
                name="booking_valid_window",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(
                        status="CANCELLED",
                        cancelled_at__isnull=False,
                        cancellation_reason__isnull=False,
                    )
                    | (
                        ~models.Q(status="CANCELLED")
                        & models.Q(cancelled_at__isnull=True, cancellation_reason__isnull=True)
                    )
                ),
                name="booking_cancellation_fields_iff_cancelled",
            ),
        ]
        indexes = [
            models.Index(fields=["court", "booking_date", "status"]),
            models.Index(fields=["user", "status"]),
            models.Index(fields=["status", "expires_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.court_id} {self.booking_date} {self.start_time:%H:%M}-{self.end_time:%H:%M} ({self.status})"
