"""
Service wiring.

One ServiceContainer per process binds every engine to the same stores,
clock and event bus, and subscribes the side-effect listeners:

- REPORT_CREATED, COMMENT_ADDED, LIKE_ADDED -> badge evaluation for the
  report owner
- STATUS_CHANGED, REPORT_ESCALATED, REPORT_DEESCALATED, COMMENT_ADDED,
  BADGE_EARNED -> notifications
"""

from datetime import datetime
from typing import Callable, List, Optional
import logging

from civicworks.services.badge_service import BadgeRule, BadgeRuleEngine
from civicworks.services.comment_service import CommentEngine
from civicworks.services.engagement_service import EngagementEngine
from civicworks.services.escalation_engine import EscalationEngine
from civicworks.services.events import DomainEvent, EventBus, EventType
from civicworks.services.lifecycle_service import LifecycleEngine
from civicworks.services.notification_service import NotificationDispatcher
from civicworks.services.report_query_service import ReportQueryService
from civicworks.services.user_service import UserService
from civicworks.stores.base import StoreBundle
from civicworks.utils.time import utcnow

logger = logging.getLogger(__name__)


class ServiceContainer:
    def __init__(
        self,
        stores: StoreBundle,
        clock: Callable[[], datetime] = utcnow,
        badge_catalog: Optional[List[BadgeRule]] = None
    ):
        self.stores = stores
        self.clock = clock
        self.bus = EventBus()

        self.dispatcher = NotificationDispatcher(stores.notifications, clock=clock)
        self.badges = BadgeRuleEngine(stores.users, self.bus, catalog=badge_catalog)
        self.lifecycle = LifecycleEngine(stores.reports, stores.users, stores.comments, self.bus, clock=clock)
        self.escalation = EscalationEngine(stores.reports, self.bus, clock=clock)
        self.engagement = EngagementEngine(stores.reports, stores.users, self.bus)
        self.comments = CommentEngine(stores.comments, stores.reports, stores.users, self.bus, clock=clock)
        self.reports = ReportQueryService(stores.reports)
        self.users = UserService(stores.users, self.badges, clock=clock)

        for event_type in (EventType.REPORT_CREATED, EventType.COMMENT_ADDED, EventType.LIKE_ADDED):
            self.bus.subscribe(event_type, self._evaluate_owner_badges)
        self.dispatcher.register(self.bus)

    def _evaluate_owner_badges(self, event: DomainEvent) -> None:
        owner = event.report.get("owner")
        if owner:
            self.badges.evaluate(owner)


_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """Get or create the process-wide ServiceContainer."""
    global _container
    if _container is None:
        from civicworks.stores.registry import get_stores

        stores = get_stores()
        _container = ServiceContainer(stores)
        logger.info(f"Services initialized on {stores.backend} backend")
    return _container


def reset_container() -> None:
    global _container
    _container = None
