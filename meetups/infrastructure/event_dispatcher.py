# meetups/infrastructure/event_dispatcher.py
import logging
from collections import defaultdict
from collections.abc import Callable

from meetups.domain.events import Event


class EventDispatcher:
    """
    Routes domain events to their handlers by class name.

    Events are dispatched after the write they describe has landed, so a
    failing handler is logged and does not turn a stored write into an error.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.handlers: dict[str, list[Callable]] = defaultdict(list)
        self.logger = logger or logging.getLogger("MeetupsAPI")

    def register(self, event_type: str, handler: Callable) -> None:
        self.handlers[event_type].append(handler)

    async def dispatch(self, event: Event) -> None:
        event_type = event.__class__.__name__
        for handler in self.handlers[event_type]:
            try:
                await handler(event)
            except Exception as e:
                self.logger.error(
                    f"Handler {getattr(handler, '__name__', handler)!s} failed for {event_type}: {e!s}"
                )
