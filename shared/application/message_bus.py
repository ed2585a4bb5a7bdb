"""
Message Bus

In-process router from domain events to their subscribers.
"""

from typing import Callable, Dict, List, Type
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class MessageBus:
    """
    Events: multiple handlers per event type (1:N)

    Subscribing to ``DomainEvent`` itself receives every event.
    """

    def __init__(self):
        self._event_handlers: Dict[Type[DomainEvent], List[Callable]] = {}

    def register_event_handler(
        self,
        event_type: Type[DomainEvent],
        handler: Callable[[DomainEvent], None]
    ):
        handlers = self._event_handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)
            logger.debug(f"Registered event handler for {event_type.__name__}")

    def subscribe(self, *event_types: Type[DomainEvent]):
        """Decorator form of register_event_handler."""
        def decorator(handler):
            for event_type in event_types:
                self.register_event_handler(event_type, handler)
            return handler
        return decorator

    def handlers_for(self, event: DomainEvent) -> List[Callable]:
        handlers: List[Callable] = []
        for event_type in type(event).__mro__:
            handlers.extend(self._event_handlers.get(event_type, []))
        return handlers

    def publish_events(self, events: List[DomainEvent]):
        """
        Call every subscriber of every event.

        A failing subscriber is logged and does not stop the others.
        """
        for event in events:
            handlers = self.handlers_for(event)

            if not handlers:
                logger.warning(f"No handlers registered for event {event.event_type}")
                continue

            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    logger.error(
                        f"Error in event handler {getattr(handler, '__name__', handler)} "
                        f"for event {event.event_type}: {e}",
                        exc_info=True
                    )


# Global message bus instance
message_bus = MessageBus()
