"""Observer channel for capture session events."""

from collections import defaultdict
from collections.abc import Callable
from enum import Enum
from typing import Any

from chefsocial_voice.utils.logger import get_logger

logger = get_logger(__name__)


class SessionEvent(str, Enum):
    """Events emitted by a capture session."""
    RECORDING_STARTED = "recording_started"
    QUALITY_WARNING = "quality_warning"
    RECORDING_STOPPED = "recording_stopped"
    ERROR_OCCURRED = "error_occurred"


Listener = Callable[[dict[str, Any]], None]


class EventChannel:
    """
    Ordered fan-out of session events to listeners.

    Listeners run in registration order. A listener that raises is logged
    and skipped; the remaining listeners still receive the event.
    """

    def __init__(self):
        self._listeners: dict[SessionEvent, list[Listener]] = defaultdict(list)

    def on(self, event: SessionEvent | str, listener: Listener) -> None:
        """Register a listener."""
        self._listeners[SessionEvent(event)].append(listener)

    def off(self, event: SessionEvent | str, listener: Listener) -> None:
        """Remove a listener; unknown listeners are ignored."""
        listeners = self._listeners.get(SessionEvent(event), [])
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event: SessionEvent | str, payload: dict[str, Any]) -> None:
        """Deliver one event occurrence to every listener once."""
        event = SessionEvent(event)
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(payload)
            except Exception as e:
                logger.warning(f"Listener for {event.value} failed: {e}")

    def clear(self) -> None:
        """Remove all listeners."""
        self._listeners.clear()

    def listener_count(self, event: SessionEvent | str) -> int:
        """Number of listeners registered for an event."""
        return len(self._listeners.get(SessionEvent(event), []))
