"""
Lightweight event bus for decoupled inter-module communication.

The call state machine and the detection loop announce what happened;
overlays and the call log subscribe without the core knowing about them.

Usage:
    bus = EventBus()
    bus.subscribe(Events.CALL_DECIDED, my_handler)
    bus.emit(Events.CALL_DECIDED, session_id=3, decision="accepted")
"""

import time
import logging
import threading
from collections import defaultdict
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class EventBus:
    """Thread-safe publish/subscribe event bus.

    Dispatch is synchronous, on the emitting thread, in priority order.
    A failing listener is logged and never breaks the emitter.
    """

    def __init__(self, max_history: int = 100):
        self._listeners = defaultdict(list)  # event_name -> [(priority, callback)]
        self._lock = threading.Lock()
        self._event_history = []
        self._max_history = max_history
        self._enabled = True

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register a listener for an event.

        Args:
            event_name: Event to listen for
            callback: Function to call. Receives **kwargs from emit().
            priority: Higher priority callbacks run first (default 0)
        """
        with self._lock:
            self._listeners[event_name].append((priority, callback))
            self._listeners[event_name].sort(key=lambda x: -x[0])
        logger.debug("Subscribed to '%s': %s (priority=%d)",
                     event_name, getattr(callback, "__name__", callback), priority)

    def unsubscribe(self, event_name: str, callback: Callable):
        """Remove a listener for an event."""
        with self._lock:
            self._listeners[event_name] = [
                (p, cb) for p, cb in self._listeners[event_name] if cb is not callback
            ]

    def emit(self, event_name: str, **kwargs):
        """Emit an event to all registered listeners."""
        if not self._enabled:
            return

        with self._lock:
            listeners = list(self._listeners.get(event_name, []))
            self._event_history.append({
                "event": event_name,
                "time": time.time(),
                "data_keys": list(kwargs.keys()),
            })
            if len(self._event_history) > self._max_history:
                self._event_history = self._event_history[-self._max_history:]

        for priority, callback in listeners:
            try:
                callback(**kwargs)
            except Exception:
                logger.exception("Event handler error [%s -> %s]",
                                 event_name, getattr(callback, "__name__", callback))

    def clear(self, event_name: Optional[str] = None):
        """Remove all listeners, optionally for a specific event."""
        with self._lock:
            if event_name:
                self._listeners.pop(event_name, None)
            else:
                self._listeners.clear()

    @property
    def listener_count(self) -> int:
        with self._lock:
            return sum(len(cbs) for cbs in self._listeners.values())

    def get_history(self, last_n: int = 10) -> list:
        """Get recent event history."""
        with self._lock:
            return self._event_history[-last_n:]


class Events:
    """Standard event names used throughout the system."""

    # Call lifecycle
    CALL_STARTED = "call_started"
    CALL_DECIDED = "call_decided"
    CALL_ENDED = "call_ended"

    # Recognition
    GESTURE_DETECTED = "gesture_detected"
    RECOGNITION_ERROR = "recognition_error"
    RECOGNIZER_READY = "recognizer_ready"
    RECOGNIZER_FAILED = "recognizer_failed"

    # System
    CAMERA_ERROR = "camera_error"
    SYSTEM_STARTED = "system_started"
    SYSTEM_SHUTDOWN = "system_shutdown"
