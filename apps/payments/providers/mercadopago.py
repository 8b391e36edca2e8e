"""
MercadoPago Checkout Pro integration

Creates checkout preferences through the REST API. Amounts arrive in
cents and are sent as major units with two decimals.
"""

from __future__ import annotations

import logging
from decimal import Decimal

import requests

from shared.domain.exceptions import PaymentProviderError

from .base import PaymentPreference, PaymentPreferenceAdapter

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.mercadopago.com"


class MercadoPagoPaymentAdapter(PaymentPreferenceAdapter):
    provider_name = "mercadopago"

    def __init__(
        self,
        access_token: str,
        api_base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 10,
        notification_url: str | None = None,
    ):
        if not access_token:
            raise ValueError("MercadoPago access token is required")
        self.access_token = access_token
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self.notification_url = notification_url

    @staticmethod
    def _idempotency_key(booking_id, amount_minor_units, expires_at) -> str:
        # Deposit and balance preferences of one booking must not collide
        expiry = int(expires_at.timestamp()) if expires_at is not None else "none"
        return f"booking-{booking_id}-{amount_minor_units}-{expiry}"

    def _headers(self, idempotency_key: str) -> dict:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-Idempotency-Key": idempotency_key,
        }

    def _build_payload(
        self, booking_id, title, description, amount_minor_units, expires_at, user_id, back_urls, currency
    ) -> dict:
        unit_price = (Decimal(amount_minor_units) / Decimal(100)).quantize(Decimal("0.01"))
        payload = {
            "items": [
                {
                    "id": str(booking_id),
                    "title": title,
                    "description": description,
                    "quantity": 1,
                    "currency_id": currency,
                    "unit_price": float(unit_price),
                }
            ],
            "external_reference": str(booking_id),
            "metadata": {"booking_id": str(booking_id), "user_id": str(user_id)},
        }
        if back_urls:
            payload["back_urls"] = dict(back_urls)
            payload["auto_return"] = "approved"
        if expires_at is not None:
            payload["expires"] = True
            payload["expiration_date_to"] = expires_at.isoformat(timespec="milliseconds")
        if self.notification_url:
            payload["notification_url"] = self.notification_url
        return payload

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
        logger.info(
            "Creating MercadoPago preference for booking %s, amount %s minor units",
            booking_id,
            amount_minor_units,
        )
        payload = self._build_payload(
            booking_id, title, description, amount_minor_units, expires_at, user_id, back_urls, currency
        )

        try:
            response = requests.post(
                f"{self.api_base_url}/checkout/preferences",
                json=payload,
                headers=self._headers(self._idempotency_key(booking_id, amount_minor_units, expires_at)),
                timeout=self.timeout,
            )
            response.raise_for_status()
            result = response.json()
        except requests.exceptions.RequestException as exc:
            logger.error("MercadoPago request failed for booking %s: %s", booking_id, exc)
            raise PaymentProviderError("Could not create payment preference", cause=exc) from exc
        except ValueError as exc:
            logger.error("MercadoPago returned a non-JSON body for booking %s", booking_id)
            raise PaymentProviderError("Payment provider returned an invalid response", cause=exc) from exc

        preference_id = result.get("id")
        init_point = result.get("init_point")
        if not preference_id or not init_point:
            logger.error("MercadoPago response without id/init_point: %s", result)
            raise PaymentProviderError("Payment provider returned an incomplete preference")

        logger.info("MercadoPago preference %s created for booking %s", preference_id, booking_id)
        return PaymentPreference(
            preference_id=str(preference_id),
            init_point=init_point,
            sandbox_init_point=result.get("sandbox_init_point"),
        )
