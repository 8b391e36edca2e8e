"""Wiring of the booking handlers.

Builds the handlers with their concrete collaborators (ORM store, Django
cache, settings reader, payment adapter) and registers them on the message
bus. Views and tasks dispatch commands through the bus and never construct
collaborators themselves.
"""

from __future__ import annotations

import logging

from shared.application.message_bus import MessageBus, message_bus

from .application.command_handlers import (
    CancelBookingCommand,
    CancelBookingHandler,
    CreateBookingCommand,
    CreateBookingHandler,
    CreatePaymentPreferenceCommand,
    CreatePaymentPreferenceHandler,
    GetSlotsHandler,
    GetSlotsQuery,
    UpdateBookingStatusCommand,
    UpdateBookingStatusHandler,
    UpdatePaymentStatusCommand,
    UpdatePaymentStatusHandler,
)

logger = logging.getLogger(__name__)


def build_booking_handlers(
    store=None,
    settings_reader=None,
    cache=None,
    payment_adapter=None,
    clock=None,
) -> dict:
    """Return ``{command_type: handler}`` with defaults for every collaborator."""

    from apps.core.services import DjangoSettingsReader
    from apps.payments.providers import get_payment_adapter

    from .infrastructure.cache import AvailabilityCache
    from .infrastructure.repositories import DjangoBookingStore

    store = store or DjangoBookingStore()
    settings_reader = settings_reader or DjangoSettingsReader()
    cache = cache or AvailabilityCache()

    cancel = CancelBookingHandler(store, cache, clock=clock)
    return {
        GetSlotsQuery: GetSlotsHandler(store, settings_reader, cache, clock=clock),
        CreateBookingCommand: CreateBookingHandler(store, settings_reader, cache, clock=clock),
        CancelBookingCommand: cancel,
        UpdateBookingStatusCommand: UpdateBookingStatusHandler(store, cache, cancel, clock=clock),
        UpdatePaymentStatusCommand: UpdatePaymentStatusHandler(store, cache, clock=clock),
        CreatePaymentPreferenceCommand: CreatePaymentPreferenceHandler(
            store, payment_adapter or get_payment_adapter(), clock=clock
        ),
    }


def register_booking_handlers(bus: MessageBus = message_bus, **collaborators) -> dict:
    """Register (or re-register) the booking handlers on ``bus``."""

    handlers = build_booking_handlers(**collaborators)
    for command_type, handler in handlers.items():
        bus.register_command_handler(command_type, handler.handle, replace=True)
    logger.debug("Registered %d booking handlers", len(handlers))
    return handlers
