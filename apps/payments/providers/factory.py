"""Chooses the payment adapter from settings. Only bootstrap code calls this."""

from __future__ import annotations

import logging

from django.conf import settings

from shared.domain.exceptions import ConfigurationError

from .base import PaymentPreferenceAdapter
from .mercadopago import DEFAULT_API_BASE_URL, MercadoPagoPaymentAdapter
from .mock import MockPaymentAdapter

logger = logging.getLogger(__name__)


def get_payment_adapter() -> PaymentPreferenceAdapter:
    """
    ``PAYMENT_PROVIDER`` is "mercadopago" or "mock". When it is unset the
    real gateway is used if an access token is configured.
    """
    provider = (getattr(settings, "PAYMENT_PROVIDER", "") or "").strip().lower()
    token = getattr(settings, "MERCADOPAGO_ACCESS_TOKEN", "")

    if not provider:
        provider = "mercadopago" if token else "mock"

    if provider == "mock":
        return MockPaymentAdapter()

    if provider == "mercadopago":
        if not token:
            raise ConfigurationError("MERCADOPAGO_ACCESS_TOKEN is required for the mercadopago provider")
        return MercadoPagoPaymentAdapter(
            access_token=token,
            api_base_url=getattr(settings, "MERCADOPAGO_API_BASE_URL", DEFAULT_API_BASE_URL),
            timeout=getattr(settings, "MERCADOPAGO_TIMEOUT", 10),
        )

    raise ConfigurationError(f"Unknown payment provider: {provider}")
