from .base import PaymentPreference, PaymentPreferenceAdapter
from .factory import get_payment_adapter
from .mercadopago import MercadoPagoPaymentAdapter
from .mock import MockPaymentAdapter

__all__ = [
    "PaymentPreference",
    "PaymentPreferenceAdapter",
    "MercadoPagoPaymentAdapter",
    "MockPaymentAdapter",
    "get_payment_adapter",
]
