"""Event dispatch and location fragment tracking."""

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

HASHCHANGE = "hashchange"

Handler = Callable[..., Any]


class EventBus:
    """Synchronous publish/subscribe dispatcher.

    Subscribers run in subscription order. A failing subscriber is logged and
    does not stop the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}

    def subscribe(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register a handler for an event.

        Returns:
            Zero-argument callable that removes the subscription
        """
        self._handlers.setdefault(event, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def emit(self, event: str, *args: Any) -> int:
        """Deliver an event to every subscriber.

        Returns:
            Number of handlers invoked
        """
        handlers = list(self._handlers.get(event, []))
        for handler in handlers:
            try:
                handler(*args)
            except Exception:
                logger.exception(f"Handler for {event!r} failed")
        return len(handlers)


class Location:
    """The current location fragment.

    Assigning a different fragment emits ``hashchange`` on the bus with the
    new fragment; assigning the current one is a no-op.
    """

    def __init__(self, bus: EventBus, fragment: str = "#/") -> None:
        self.bus = bus
        self._hash = normalize_hash(fragment)

    @property
    def hash(self) -> str:
        return self._hash

    def assign(self, fragment: str) -> bool:
        """Navigate to a fragment.

        Args:
            fragment: ``#/post/x`` or ``/post/x``

        Returns:
            True if the fragment changed and ``hashchange`` was emitted
        """
        fragment = normalize_hash(fragment)
        if fragment == self._hash:
            return False
        self._hash = fragment
        logger.debug(f"Location changed to {fragment}")
        self.bus.emit(HASHCHANGE, fragment)
        return True


def normalize_hash(fragment: str) -> str:
    return fragment if fragment.startswith("#") else f"#{fragment}"
