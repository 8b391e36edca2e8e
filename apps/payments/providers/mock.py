"""In-process payment adapter for development and tests."""

from __future__ import annotations

import logging
import uuid

from .base import PaymentPreference, PaymentPreferenceAdapter

logger = logging.getLogger(__name__)


class MockPaymentAdapter(PaymentPreferenceAdapter):
    """Returns a fake checkout URL without contacting any gateway."""

    provider_name = "mock"

    def __init__(self, base_url: str = "https://sandbox.payments.local/checkout"):
        self.base_url = base_url.rstrip("/")
        self.created: list[dict] = []

    def create_preference(
        self,
        booking_id,
        title,
        description,
        amount_minor_units,
        expires_at,
        user_id,
        back_urls=None,
        currency="ARS",
    ) -> PaymentPreference:
        preference_id = f"mock_{uuid.uuid4().hex[:16]}"
        self.created.append(
            {
                "preference_id": preference_id,
                "booking_id": str(booking_id),
                "title": title,
                "amount_minor_units": amount_minor_units,
                "currency": currency,
                "expires_at": expires_at,
                "user_id": user_id,
            }
        )
        logger.warning(
            "Using mock payment provider for booking %s (%s minor units)", booking_id, amount_minor_units
        )
        url = f"{self.base_url}/{preference_id}"
        return PaymentPreference(preference_id=preference_id, init_point=url, sandbox_init_point=url)
