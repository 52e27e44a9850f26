"""
Badge Rule Engine - grants badges and points from a user's stats snapshot.

DESIGN PRINCIPLES:
- The catalog is data: an ordered list of BadgeRule value objects that can
  be replaced per engine instance
- Evaluation is idempotent: a held badge is never re-evaluated or revoked
- Grants are one conditional store write, so concurrent evaluations for the
  same user never award a badge (or its points) twice
"""

from typing import Callable, Dict, List, Optional
import logging

from civicworks.core.settings import settings
from civicworks.models.user import StatsSnapshot
from civicworks.services.events import DomainEvent, EventBus, EventType
from civicworks.stores.base import UserStore

logger = logging.getLogger(__name__)


class BadgeRule:
    """A badge definition: identity, display info, predicate and reward."""

    def __init__(
        self,
        id: str,
        name: str,
        description: str,
        icon: str,
        predicate: Callable[[StatsSnapshot], bool],
        points: Optional[int] = None
    ):
        self.id = id
        self.name = name
        self.description = description
        self.icon = icon
        self.predicate = predicate
        self.points = settings.BADGE_POINTS if points is None else points

    def is_earned(self, stats: StatsSnapshot) -> bool:
        return bool(self.predicate(stats))

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "points": self.points,
        }


def default_badge_catalog() -> List[BadgeRule]:
    return [
        BadgeRule("first_report", "First Report", "Submitted your first complaint", "🎯",
                  lambda s: s.total_reports >= 1),
        BadgeRule("top_contributor", "Top Contributor", "Submitted 10+ complaints", "⭐",
                  lambda s: s.total_reports >= 10),
        BadgeRule("neighborhood_hero", "Neighborhood Hero", "Submitted 50+ complaints", "🦸",
                  lambda s: s.total_reports >= 50),
        BadgeRule("helpful", "Helpful", "Received 50+ likes on your reports", "👍",
                  lambda s: s.total_likes_received >= 50),
        BadgeRule("eagle_eye", "Eagle Eye", "Identified 5+ false reports", "🦅",
                  lambda s: s.false_reports_caught >= 5),
        BadgeRule("community_star", "Community Star", "100+ total engagement (likes + comments)", "🌟",
                  lambda s: (s.total_likes_received + s.total_comments_received) >= 100),
        BadgeRule("emergency_reporter", "Emergency Reporter", "Reported 5+ emergency issues", "🚨",
                  lambda s: s.emergency_reports >= 5),
    ]


class BadgeRuleEngine:
    """Evaluates the catalog against a user and grants what was newly earned."""

    def __init__(self, users: UserStore, bus: EventBus, catalog: Optional[List[BadgeRule]] = None):
        self.users = users
        self.bus = bus
        self.catalog = list(catalog) if catalog is not None else default_badge_catalog()

    def get_rule(self, badge_id: str) -> Optional[BadgeRule]:
        for rule in self.catalog:
            if rule.id == badge_id:
                return rule
        return None

    def list_catalog(self) -> List[Dict]:
        return [rule.to_dict() for rule in self.catalog]

    def pending_badges(self, user: Dict) -> List[BadgeRule]:
        """Rules the user does not hold yet whose predicate holds now."""
        held = set(user.get("badges") or [])
        stats = StatsSnapshot.from_user(user)
        return [rule for rule in self.catalog if rule.id not in held and rule.is_earned(stats)]

    def evaluate(self, user_id: str) -> List[str]:
        """
        Grant every newly earned badge to a user.

        Each granted badge adds its points and publishes a BADGE_EARNED event
        (the notification dispatcher turns it into a badge_earned notification).

        Returns:
            Newly earned badge ids in catalog order (possibly empty)
        """
        user = self.users.get(user_id)
        if user is None:
            logger.warning(f"Badge evaluation skipped: user {user_id} not found")
            return []

        candidates = self.pending_badges(user)
        if not candidates:
            return []

        granted = self.users.grant_badges(user_id, {rule.id: rule.points for rule in candidates})
        granted_set = set(granted)
        newly_earned = [rule.id for rule in candidates if rule.id in granted_set]

        for badge_id in newly_earned:
            rule = self.get_rule(badge_id)
            logger.info(f"Badge '{badge_id}' granted to user {user_id} (+{rule.points} points)")
            self.bus.publish(DomainEvent(
                EventType.BADGE_EARNED,
                actor=user_id,
                data={"user_id": user_id, "badge": rule.to_dict()}
            ))

        return newly_earned
