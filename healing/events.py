"""
HealingEventBus for the Self-Healing Engine.
Synchronous, side-effect isolated observer list per event name.
"""
import threading
from typing import Any, Callable, Dict, List

from healing.logger import get_logger

logger = get_logger(__name__)

# Event Types
EVENT_RECOVERY_STARTED = "recovery:started"
EVENT_RECOVERY_SUCCESS = "recovery:success"
EVENT_RECOVERY_FAILED = "recovery:failed"
EVENT_ACTION_EXECUTED = "action:executed"
EVENT_BACKOFF_APPLIED = "backoff:applied"
EVENT_METRICS_UPDATED = "metrics:updated"

EVENT_TYPES = (
    EVENT_RECOVERY_STARTED,
    EVENT_RECOVERY_SUCCESS,
    EVENT_RECOVERY_FAILED,
    EVENT_ACTION_EXECUTED,
    EVENT_BACKOFF_APPLIED,
    EVENT_METRICS_UPDATED,
)

EventHandler = Callable[[Any], None]


class HealingEventBus:
    """
    Manages registration and dispatch of engine event handlers.
    """
    def __init__(self):
        self.handlers: Dict[str, List[EventHandler]] = {name: [] for name in EVENT_TYPES}
        self._lock = threading.Lock()

    def on(self, event: str, handler: EventHandler):
        with self._lock:
            if event not in self.handlers:
                logger.warning("Unknown event type", event_type=event)
                self.handlers[event] = []
            self.handlers[event].append(handler)

    def off(self, event: str, handler: EventHandler):
        with self._lock:
            handlers = self.handlers.get(event)
            if handlers and handler in handlers:
                handlers.remove(handler)

    def clear(self):
        with self._lock:
            self.handlers = {name: [] for name in EVENT_TYPES}

    def emit(self, event: str, payload: Any = None):
        """
        Dispatch event to all registered handlers in registration order.
        Ensure isolation: exceptions in handlers do not crash the engine.
        """
        with self._lock:
            handlers = list(self.handlers.get(event, ()))

        for handler in handlers:
            try:
                handler(payload)
            except Exception as e:
                logger.error("Event handler failed", event_type=event, handler=repr(handler), error=str(e))
