"""
Message Bus

Routes commands to their single handler and domain events to every
subscriber. Views and Celery tasks only talk to the booking engine through
``message_bus.handle_command``; app configs wire handlers and subscribers
in ``ready()``.
"""

from typing import Any, Callable, Dict, Iterable, List, Type
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class MessageBus:
    """
    Commands: one handler per command type, its return value is the result
    Events: any number of subscribers per event type, failures are isolated
    """

    def __init__(self):
        self._event_handlers: Dict[Type[DomainEvent], List[Callable]] = {}
        self._command_handlers: Dict[Type, Callable] = {}

    def register_event_handler(self, event_type: Type[DomainEvent], handler: Callable[[DomainEvent], None]):
        """Subscribe ``handler``; subscribing the same callable twice is a no-op"""
        handlers = self._event_handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)
            logger.debug("Subscribed %s to %s", getattr(handler, '__name__', handler), event_type.__name__)

    def register_command_handler(self, command_type: Type, handler: Callable[[Any], Any], replace: bool = False):
        """
        Register the handler of ``command_type``

        A second registration raises ValueError unless ``replace`` is set,
        which is how collaborators are swapped (tests, reconfiguration).
        """
        if command_type in self._command_handlers and not replace:
            raise ValueError(f"Handler for {command_type.__name__} is already registered")
        self._command_handlers[command_type] = handler
        logger.debug("Registered command handler for %s", command_type.__name__)

    def handle_command(self, command: Any) -> Any:
        """Run the registered handler. Domain errors propagate to the caller."""
        command_type = type(command)
        handler = self._command_handlers.get(command_type)
        if handler is None:
            raise LookupError(f"No handler registered for command {command_type.__name__}")

        logger.info("Handling command: %s", command_type.__name__)
        try:
            return handler(command)
        except Exception as e:
            logger.warning("Command %s failed: %s", command_type.__name__, e)
            raise

    def publish_events(self, events: Iterable[DomainEvent]):
        """
        Deliver committed events

        The state change is already durable, so a failing subscriber is
        logged and the remaining subscribers still run.
        """
        for event in events:
            event_type = type(event)
            handlers = self._event_handlers.get(event_type, [])
            if not handlers:
                logger.debug("No subscribers for %s", event_type.__name__)
                continue

            logger.info("Publishing event: %s (ID: %s)", event_type.__name__, event.event_id)
            for handler in handlers:
                try:
                    handler(event)
                except Exception:
                    logger.exception(
                        "Subscriber %s failed on %s %s",
                        getattr(handler, '__name__', handler), event_type.__name__, event.event_id,
                    )


# Global message bus instance
message_bus = MessageBus()
