"""Engine events and a minimal subscriber registry."""
import logging
from collections import deque

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 1000

TICK = 'tick'
BREAKTHROUGH_UNLOCKED = 'breakthrough_unlocked'
ERA_ADVANCED = 'era_advanced'
AGI_REACHED = 'agi_reached'
INSUFFICIENT_FUNDS = 'insufficient_funds'
INSUFFICIENT_CAPACITY = 'insufficient_capacity'
LEVEL_UP = 'level_up'
TRAINING_STARTED = 'training_started'
TRAINING_COMPLETED = 'training_completed'
NARRATIVE_NOTICE = 'narrative_notice'

ALL_EVENTS = (
    TICK,
    BREAKTHROUGH_UNLOCKED,
    ERA_ADVANCED,
    AGI_REACHED,
    INSUFFICIENT_FUNDS,
    INSUFFICIENT_CAPACITY,
    LEVEL_UP,
    TRAINING_STARTED,
    TRAINING_COMPLETED,
    NARRATIVE_NOTICE,
)

class EventBus:
    """Collects callbacks per event name and fans out emitted payloads.

    The engine never depends on its subscribers: a callback that raises is
    logged and skipped so the tick that emitted the event still completes.
    """

    def __init__(self, history_limit=HISTORY_LIMIT):
        """Initialize empty subscriber lists."""
        self._subscribers = {name: [] for name in ALL_EVENTS}
        # Oldest events fall off when nobody drains the history
        self.history = deque(maxlen=history_limit)

    def subscribe(self, event_name, callback):
        """Register a callback for an event name."""
        if event_name not in self._subscribers:
            raise ValueError(f"Unknown event: {event_name}")
        self._subscribers[event_name].append(callback)
        return callback

    def unsubscribe(self, event_name, callback):
        """Remove a previously registered callback."""
        callbacks = self._subscribers.get(event_name, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def has_subscribers(self, event_name):
        return bool(self._subscribers.get(event_name))

    def emit(self, event_name, payload=None):
        """Deliver payload to every subscriber of event_name."""
        # Tick events are too frequent to keep in the history
        if event_name != TICK:
            self.history.append((event_name, payload))
        for callback in list(self._subscribers.get(event_name, [])):
            try:
                callback(payload)
            except Exception:
                logger.exception("Subscriber for %s failed", event_name)

    def drain_history(self):
        """Return and clear the non-tick events emitted so far."""
        history = list(self.history)
        self.history.clear()
        return history
