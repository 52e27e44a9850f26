"""
Engagement Engine - likes, dislikes, false-report flags and view counting.

Every toggle is one atomic store primitive: the membership check and the
write happen together, so concurrent toggles can neither put a user in both
likes and dislikes nor double count a view.
"""

from typing import Dict, Optional
import logging

from civicworks.services.events import DomainEvent, EventBus, EventType
from civicworks.stores.base import ReportStore, UserStore

logger = logging.getLogger(__name__)


def _reaction_counts(report: Dict, user_id: str) -> Dict:
    likes = report.get("likes", [])
    dislikes = report.get("dislikes", [])
    return {
        "likes": len(likes),
        "dislikes": len(dislikes),
        "liked": user_id in likes,
        "disliked": user_id in dislikes,
    }


class EngagementEngine:
    """Service for reactions and views on reports."""

    def __init__(self, reports: ReportStore, users: UserStore, bus: EventBus):
        self.reports = reports
        self.users = users
        self.bus = bus

    def _credit_owner_likes(self, report: Dict, delta: int) -> None:
        owner = report.get("owner")
        if not owner:
            return
        try:
            self.users.increment(owner, {"total_likes_received": delta})
        except Exception as e:
            logger.warning(f"Like counter update failed for owner {owner}: {e}")

    def toggle_like(self, report_id: str, user_id: str) -> Dict:
        """
        Like a report, or remove an existing like.

        A dislike by the same user is removed in the same write. Adding a
        like credits the owner's total_likes_received; removing it takes the
        credit back.
        """
        report, liked, _ = self.reports.toggle_member(report_id, "likes", user_id, exclusive_with="dislikes")

        self._credit_owner_likes(report, 1 if liked else -1)
        if liked:
            self.bus.publish(DomainEvent(EventType.LIKE_ADDED, actor=user_id, report=report))

        return _reaction_counts(report, user_id)

    def toggle_dislike(self, report_id: str, user_id: str) -> Dict:
        """Dislike a report, or remove an existing dislike. Symmetric to toggle_like."""
        report, _, removed_like = self.reports.toggle_member(report_id, "dislikes", user_id, exclusive_with="likes")

        if removed_like:
            self._credit_owner_likes(report, -1)

        return _reaction_counts(report, user_id)

    def toggle_false_report(self, report_id: str, user_id: str) -> Dict:
        """Flag / unflag a report as false. Independent of likes and dislikes."""
        report, flagged, _ = self.reports.toggle_member(report_id, "false_reports", user_id)
        logger.info(f"Report {report_id} false-report flag {'added' if flagged else 'removed'} by {user_id}")
        return {"false_reports": len(report.get("false_reports", [])), "flagged": flagged}

    def record_view(self, report_id: str, user_id: Optional[str] = None) -> Dict:
        """
        Count a view.

        Anonymous views always count. A signed-in user counts once per
        report; repeat views return the current count with is_new_view=False.
        """
        view_count, is_new_view = self.reports.add_view(report_id, user_id)
        return {"view_count": view_count, "is_new_view": is_new_view}
