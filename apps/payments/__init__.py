"""Payments app package.

Holds the payment gateway adapters used to issue redirectable payment
intents ("preferences") for bookings. The booking handlers only depend on
``PaymentPreferenceAdapter``; which gateway backs it is decided in
``providers.factory``.
"""
