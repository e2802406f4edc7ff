"""Observer bus: outward notifications (logging, diagnostics). The core never waits on it."""

from ircord.events import Dispatcher, EventTarget

__all__ = ["Bus", "EventTarget"]


class Bus:
    """Event bus wrapping the central dispatcher. Observers register and receive events."""

    def __init__(self) -> None:
        self._dispatcher = Dispatcher()

    def register(self, target: EventTarget) -> None:
        """Register an observer."""
        self._dispatcher.register(target)

    def unregister(self, target: EventTarget) -> None:
        """Unregister an observer."""
        self._dispatcher.unregister(target)

    @property
    def _observers(self) -> list[EventTarget]:
        return self._dispatcher._targets

    def publish(self, source: str, evt: object) -> None:
        """Publish event to all observers that accept it."""
        self._dispatcher.dispatch(source, evt)
