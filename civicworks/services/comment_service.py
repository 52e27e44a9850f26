"""
Comment Service - flat comments on reports.
"""

from datetime import datetime
from typing import Callable, Dict, List
import logging

from civicworks.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from civicworks.services.events import DomainEvent, EventBus, EventType
from civicworks.stores.base import CommentStore, ReportStore, UserStore
from civicworks.utils.time import utcnow

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 1000


class CommentEngine:
    """Service for managing comments on reports."""

    def __init__(
        self,
        comments: CommentStore,
        reports: ReportStore,
        users: UserStore,
        bus: EventBus,
        clock: Callable[[], datetime] = utcnow
    ):
        self.comments = comments
        self.reports = reports
        self.users = users
        self.bus = bus
        self.clock = clock

    def add_comment(self, report_id: str, user_id: str, text: str) -> Dict:
        """
        Add a comment to a report.

        Credits the report owner's total_comments_received and publishes
        COMMENT_ADDED (owner notification + badge evaluation).

        Raises:
            ValidationError: If text is empty after trimming or too long
            NotFoundError: If the report does not exist
        """
        text = (text or "").strip()
        if not text:
            raise ValidationError("Comment text is required", field="text")
        if len(text) > MAX_COMMENT_LENGTH:
            raise ValidationError(f"Comment text must be at most {MAX_COMMENT_LENGTH} characters", field="text")

        report = self.reports.get(report_id)
        if report is None:
            raise NotFoundError("Report", report_id)

        comment = self.comments.create({
            "report_id": report_id,
            "owner": user_id,
            "text": text,
            "created_at": self.clock(),
        })
        logger.info(f"Comment {comment['id']} added to report {report_id} by {user_id}")

        owner = report.get("owner")
        if owner:
            try:
                self.users.increment(owner, {"total_comments_received": 1})
            except Exception as e:
                logger.warning(f"Comment counter update failed for owner {owner}: {e}")

        self.bus.publish(DomainEvent(EventType.COMMENT_ADDED, actor=user_id, report=report,
                                     data={"comment": comment}))
        return comment

    def delete_comment(self, comment_id: str, user_id: str) -> None:
        """
        Delete a comment. Only its author may delete it.
        """
        comment = self.comments.get(comment_id)
        if comment is None:
            raise NotFoundError("Comment", comment_id)
        if comment.get("owner") != user_id:
            raise ForbiddenError("Not authorized to delete this comment")

        self.comments.delete(comment_id)
        logger.info(f"Comment {comment_id} deleted by {user_id}")

    def get_comments(self, report_id: str) -> List[Dict]:
        """All comments for a report, newest first."""
        return self.comments.list_for_report(report_id)
