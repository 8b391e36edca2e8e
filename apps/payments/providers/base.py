"""Gateway-independent payment preference contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping
from uuid import UUID


@dataclass(frozen=True)
class PaymentPreference:
    preference_id: str
    init_point: str
    sandbox_init_point: str | None = None

    def to_dict(self) -> dict:
        return {
            "preference_id": self.preference_id,
            "init_point": self.init_point,
            "sandbox_init_point": self.sandbox_init_point,
        }


class PaymentPreferenceAdapter(ABC):
    """
    Issues a payment intent the payer can be redirected to.

    ``amount_minor_units`` is always in cents; converting to whatever unit
    the gateway expects is the adapter's job. Every gateway failure must be
    raised as ``PaymentProviderError``.
    """

    provider_name = "abstract"

    @abstractmethod
    def create_preference(
        self,
        booking_id: UUID,
        title: str,
        description: str,
        amount_minor_units: int,
        expires_at: datetime | None,
        user_id: str,
        back_urls: Mapping[str, str] | None = None,
        currency: str = "ARS",
    ) -> PaymentPreference:
        raise NotImplementedError
