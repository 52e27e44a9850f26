"""
Notification Dispatcher - turns lifecycle, comment and badge events into
Notification documents, and serves the recipient's read/delete actions.

Delivery (push, email) is not done here; a notification is only a stored
record. notify() never raises: a failed write is logged and the operation
that triggered it carries on.
"""

import math
from typing import Callable, Dict, Optional
from datetime import datetime
import logging

from civicworks.core.exceptions import NotFoundError, ValidationError
from civicworks.core.settings import settings
from civicworks.models.notification import NotificationType
from civicworks.services.events import DomainEvent, EventBus, EventType
from civicworks.stores.base import NotificationStore
from civicworks.utils.time import utcnow

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    "pending": "Pending",
    "under_review": "Under Review",
    "in_progress": "In Progress",
    "resolved": "Resolved",
    "rejected": "Rejected",
}


def _report_payload(report: Dict, **extra) -> Dict:
    payload = {"report_id": report.get("id"), "link": f"/reports/{report.get('id')}"}
    payload.update({k: v for k, v in extra.items() if v is not None})
    return payload


class NotificationDispatcher:
    """Creates notifications for report owners and badge earners."""

    def __init__(self, notifications: NotificationStore, clock: Callable[[], datetime] = utcnow):
        self.notifications = notifications
        self.clock = clock

    def notify(
        self,
        recipient_id: str,
        type: NotificationType,
        title: str,
        message: str,
        data: Optional[Dict] = None
    ) -> Optional[Dict]:
        """
        Persist one notification.

        Returns:
            The stored notification, or None if the write failed
        """
        try:
            notification = self.notifications.create({
                "recipient": recipient_id,
                "type": NotificationType(type).value,
                "title": title,
                "message": message,
                "data": data,
                "read": False,
                "read_at": None,
                "created_at": self.clock(),
            })
            logger.info(f"Notification '{notification['type']}' created for user {recipient_id}")
            return notification
        except Exception as e:
            logger.error(f"Failed to create notification for user {recipient_id}: {e}", exc_info=True)
            return None

    # ------------------------------------------------------------------
    # Event listeners
    # ------------------------------------------------------------------

    def register(self, bus: EventBus) -> None:
        bus.subscribe(EventType.STATUS_CHANGED, self.on_status_changed)
        bus.subscribe(EventType.REPORT_ESCALATED, self.on_report_escalated)
        bus.subscribe(EventType.REPORT_DEESCALATED, self.on_report_deescalated)
        bus.subscribe(EventType.COMMENT_ADDED, self.on_comment_added)
        bus.subscribe(EventType.BADGE_EARNED, self.on_badge_earned)

    def on_status_changed(self, event: DomainEvent) -> None:
        report = event.report
        new_status = event.data.get("new_status")
        category = report.get("category", "")
        label = STATUS_LABELS.get(new_status, new_status)
        self.notify(
            report["owner"],
            NotificationType.STATUS_UPDATE,
            "Report status updated",
            f"Your {category} report is now {label}.",
            _report_payload(report),
        )
        if new_status == "resolved":
            self.notify(
                report["owner"],
                NotificationType.RESOLUTION,
                "Report resolved",
                f"Your {category} report has been marked as resolved.",
                _report_payload(report),
            )

    def on_report_escalated(self, event: DomainEvent) -> None:
        report = event.report
        self.notify(
            report["owner"],
            NotificationType.ESCALATION,
            "🚨 Report escalated",
            f"Your {report.get('category', '')} report was escalated to critical priority "
            f"(level {report.get('escalation_level', 0)}): {report.get('escalation_reason')}",
            _report_payload(report),
        )

    def on_report_deescalated(self, event: DomainEvent) -> None:
        report = event.report
        self.notify(
            report["owner"],
            NotificationType.STATUS_UPDATE,
            "Report de-escalated",
            f"Your {report.get('category', '')} report is no longer marked as an emergency. "
            f"{event.data.get('reason', '')}".strip(),
            _report_payload(report),
        )

    def on_comment_added(self, event: DomainEvent) -> None:
        report = event.report
        comment = event.data.get("comment", {})
        if comment.get("owner") == report.get("owner"):
            return
        text = comment.get("text", "")
        snippet = text if len(text) <= 80 else text[:77] + "..."
        self.notify(
            report["owner"],
            NotificationType.COMMENT,
            "New comment on your report",
            snippet,
            _report_payload(report, comment_id=comment.get("id")),
        )

    def on_badge_earned(self, event: DomainEvent) -> None:
        badge = event.data["badge"]
        self.notify(
            event.data["user_id"],
            NotificationType.BADGE_EARNED,
            f"{badge['icon']} New Badge Earned!",
            f"Congratulations! You've earned the \"{badge['name']}\" badge. {badge['description']}",
            {"badge": badge["id"], "link": "/profile/badges"},
        )

    # ------------------------------------------------------------------
    # Recipient actions
    # ------------------------------------------------------------------

    def list_notifications(
        self,
        user_id: str,
        page: int = 1,
        limit: int = settings.DEFAULT_PAGE_SIZE,
        unread_only: bool = False
    ) -> Dict:
        if page < 1:
            raise ValidationError("page must be >= 1", field="page")
        if limit < 1 or limit > settings.MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {settings.MAX_PAGE_SIZE}", field="limit")

        items = self.notifications.list_for_user(
            user_id, unread_only=unread_only, offset=(page - 1) * limit, limit=limit
        )
        total = self.notifications.count_for_user(user_id, unread_only=unread_only)
        unread_count = self.notifications.count_for_user(user_id, unread_only=True)
        return {
            "notifications": items,
            "total": total,
            "unread_count": unread_count,
            "page": page,
            "pages": math.ceil(total / limit),
        }

    def mark_read(self, notification_id: str, user_id: str) -> Dict:
        notification = self.notifications.mark_read(notification_id, user_id, self.clock())
        if notification is None:
            raise NotFoundError("Notification", notification_id)
        return notification

    def mark_all_read(self, user_id: str) -> int:
        updated = self.notifications.mark_all_read(user_id, self.clock())
        logger.info(f"Marked {updated} notification(s) read for user {user_id}")
        return updated

    def delete_notification(self, notification_id: str, user_id: str) -> None:
        if not self.notifications.delete(notification_id, user_id):
            raise NotFoundError("Notification", notification_id)
