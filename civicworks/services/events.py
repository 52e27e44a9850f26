"""
Post-commit domain events.

Services publish an event after their primary write has succeeded.
Listeners (badge evaluation, notification creation) run synchronously,
in subscription order, before the request returns. A failing listener is
logged and skipped: it never fails the operation that published the event,
and it never stops the remaining listeners.
"""

from collections import defaultdict
from enum import Enum
from typing import Callable, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    REPORT_CREATED = "report_created"
    STATUS_CHANGED = "status_changed"
    REPORT_ESCALATED = "report_escalated"
    REPORT_DEESCALATED = "report_deescalated"
    COMMENT_ADDED = "comment_added"
    LIKE_ADDED = "like_added"
    BADGE_EARNED = "badge_earned"


class DomainEvent:
    """
    Something that happened to a report or user.

    Args:
        type: What happened
        actor: User id that caused it
        report: Report document after the change (if report-related)
        data: Event-specific extras (old_status, badge_id, comment, ...)
    """

    def __init__(
        self,
        type: EventType,
        actor: Optional[str] = None,
        report: Optional[Dict] = None,
        data: Optional[Dict] = None
    ):
        self.type = type
        self.actor = actor
        self.report = report or {}
        self.data = data or {}

    def __repr__(self) -> str:
        return f"DomainEvent({self.type.value}, report={self.report.get('id')}, actor={self.actor})"


Listener = Callable[[DomainEvent], None]


class EventBus:
    """Synchronous publish/subscribe with per-listener failure isolation."""

    def __init__(self):
        self._listeners: Dict[EventType, List[Listener]] = defaultdict(list)

    def subscribe(self, event_type: EventType, listener: Listener) -> None:
        self._listeners[event_type].append(listener)

    def publish(self, event: DomainEvent) -> int:
        """
        Deliver an event to every subscribed listener.

        Returns:
            Number of listeners that failed
        """
        failures = 0
        for listener in list(self._listeners.get(event.type, [])):
            try:
                listener(event)
            except Exception as e:
                failures += 1
                name = getattr(listener, "__qualname__", repr(listener))
                logger.error(f"Listener {name} failed for {event!r}: {e}", exc_info=True)
        return failures
