import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("courts", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("booking_date", models.DateField()),
                ("start_time", models.TimeField()),
                ("end_time", models.TimeField()),
                ("duration_minutes", models.PositiveIntegerField()),
                ("total_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("deposit_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("currency", models.CharField(default="ARS", max_length=3)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending payment"),
                            ("CONFIRMED", "Confirmed"),
                            ("ACTIVE", "In progress"),
                            ("COMPLETED", "Completed"),
                            ("CANCELLED", "Cancelled"),
                        ],
                        default="PENDING",
                        max_length=16,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Awaiting payment"),
                            ("DEPOSIT_PAID", "Deposit paid"),
                            ("FULLY_PAID", "Fully paid"),
                            ("FAILED", "Payment failed"),
                        ],
                        default="PENDING",
                        max_length=16,
                    ),
                ),
                ("payment_method", models.CharField(blank=True, max_length=50, null=True)),
                ("notes", models.TextField(blank=True)),
                (
                    "expires_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Unpaid bookings are cancelled by the system after this moment.",
                        null=True,
                    ),
                ),
                ("cancellation_reason", models.CharField(blank=True, max_length=255, null=True)),
                ("cancelled_by", models.CharField(blank=True, max_length=64, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("refund_granted", models.BooleanField(blank=True, null=True)),
                ("created_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField()),
                (
                    "court",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="courts.court",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="court_bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "ordering": ["-booking_date", "-start_time"],
                "indexes": [
                    models.Index(fields=["court", "booking_date", "status"], name="bookings_bo_court_i_5c1f0e_idx"),
                    models.Index(fields=["user", "status"], name="bookings_bo_user_id_8e2d41_idx"),
                    models.Index(fields=["status", "expires_at"], name="bookings_bo_status_3a9b7c_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("end_time__gt", models.F("start_time"))),
                        name="booking_valid_window",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(
                                ("status", "CANCELLED"),
                                ("cancelled_at__isnull", False),
                                ("cancellation_reason__isnull", False),
                            ),
                            models.Q(
                                models.Q(("status", "CANCELLED"), _negated=True),
                                models.Q(("cancelled_at__isnull", True), ("cancellation_reason__isnull", True)),
                            ),
                            _connector="OR",
                        ),
                        name="booking_cancellation_fields_iff_cancelled",
                    ),
                ],
            },
        ),
    ]
