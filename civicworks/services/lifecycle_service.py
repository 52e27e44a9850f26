"""
Lifecycle Engine - report creation, status transitions and deletion.

Flow for every mutation:
1. Validate input and load the report
2. Apply the change with one atomic store operation
3. Update the owner's counters (best-effort, separate write)
4. Publish a domain event; badge evaluation and notifications run as
   listeners and can never fail the operation

Authorization beyond "owner vs. non-owner" is the caller's concern.
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional
import logging

from civicworks.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from civicworks.core.settings import settings
from civicworks.models.report import Priority, ReportStatus
from civicworks.services.events import DomainEvent, EventBus, EventType
from civicworks.services.status_workflow import StatusWorkflowEngine
from civicworks.stores.base import CommentStore, ReportStore, UserStore
from civicworks.utils.time import utcnow

logger = logging.getLogger(__name__)

EMERGENCY_CREATION_REASON = "Reported as emergency"


def _parse_coordinate(value, name: str, bound: float) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("Category, lat, and lng are required", field=name)
    try:
        coordinate = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number", field=name)
    if not -bound <= coordinate <= bound:
        raise ValidationError(f"{name} must be between -{bound:g} and {bound:g}", field=name)
    return coordinate


def _parse_priority(value) -> Optional[Priority]:
    if value is None or value == "":
        return None
    try:
        return Priority(value)
    except ValueError:
        allowed = [p.value for p in Priority]
        raise ValidationError(f"Invalid priority '{value}'. Allowed: {allowed}", field="priority")


class LifecycleEngine:
    """Owns report creation, the status state machine and report deletion."""

    def __init__(
        self,
        reports: ReportStore,
        users: UserStore,
        comments: CommentStore,
        bus: EventBus,
        clock: Callable[[], datetime] = utcnow
    ):
        self.reports = reports
        self.users = users
        self.comments = comments
        self.bus = bus
        self.clock = clock
        self.workflow = StatusWorkflowEngine()

    def _require_report(self, report_id: str) -> Dict:
        report = self.reports.get(report_id)
        if report is None:
            raise NotFoundError("Report", report_id)
        return report

    def create_report(
        self,
        owner: str,
        category: Optional[str],
        description: Optional[str] = None,
        lat=None,
        lng=None,
        photos: Optional[List[str]] = None,
        is_emergency: bool = False,
        priority=None
    ) -> Dict:
        """
        Create a new report in `pending`.

        Priority is `critical` for emergencies; otherwise the requested
        priority or `medium`. The owner earns REPORT_POINTS (or
        EMERGENCY_REPORT_POINTS) and badge evaluation runs for them.

        Raises:
            ValidationError: If category, lat or lng is missing or malformed
        """
        if not category or not str(category).strip():
            raise ValidationError("Category, lat, and lng are required", field="category")
        lat_value = _parse_coordinate(lat, "lat", 90)
        lng_value = _parse_coordinate(lng, "lng", 180)
        requested_priority = _parse_priority(priority)

        is_emergency = bool(is_emergency)
        if is_emergency:
            resolved_priority = Priority.CRITICAL
        else:
            resolved_priority = requested_priority or Priority.MEDIUM

        now = self.clock()
        initial_status = StatusWorkflowEngine.INITIAL_STATUS.value
        report = self.reports.create({
            "owner": owner,
            "category": str(category).strip(),
            "description": description.strip() if description else None,
            "lat": lat_value,
            "lng": lng_value,
            "photos": [p for p in (photos or []) if p],
            "after_photos": [],
            "status": initial_status,
            "status_history": [self.workflow.create_status_history_entry(
                status=initial_status,
                changed_by=owner,
                timestamp=now,
                note="Report created"
            )],
            "resolved_at": None,
            "is_emergency": is_emergency,
            "priority": resolved_priority.value,
            "escalated_at": now if is_emergency else None,
            "escalation_level": 0,
            "escalation_reason": EMERGENCY_CREATION_REASON if is_emergency else None,
            "likes": [],
            "dislikes": [],
            "false_reports": [],
            "view_count": 0,
            "viewed_by": [],
            "created_at": now,
            "updated_at": now,
        })
        logger.info(f"Report created: {report['id']} (owner={owner}, emergency={is_emergency})")

        deltas = {
            "total_reports": 1,
            "points": settings.EMERGENCY_REPORT_POINTS if is_emergency else settings.REPORT_POINTS,
        }
        if is_emergency:
            deltas["emergency_reports"] = 1
        try:
            self.users.increment(owner, deltas)
        except Exception as e:
            logger.warning(f"Stats update failed for user {owner} after report {report['id']}: {e}")

        self.bus.publish(DomainEvent(EventType.REPORT_CREATED, actor=owner, report=report))
        return report

    def update_status(
        self,
        report_id: str,
        new_status: str,
        actor: str,
        note: Optional[str] = None,
        after_photos: Optional[List[str]] = None
    ) -> Dict:
        """
        Move a report to a new status and log it in status_history.

        resolved_at is set the first time a report becomes resolved and is
        kept on later resolutions. after_photos replace the existing ones
        only when provided with a resolution.
        """
        target = self.workflow.parse_status(new_status)
        now = self.clock()
        transition = {}

        def history_entry(current: Dict) -> Dict:
            # Runs inside the store lock or transaction
            transition["from_status"] = current.get("status") or ReportStatus.PENDING.value
            return self.workflow.transition_entry(transition["from_status"], target, actor, now, note)

        if target == ReportStatus.RESOLVED:
            updated = self.reports.resolve(
                report_id,
                resolved_at=now,
                history_entry=history_entry,
                after_photos=[p for p in (after_photos or []) if p],
                fields={"updated_at": now}
            )
        else:
            updated = self.reports.update(
                report_id,
                {"status": target.value, "updated_at": now},
                history_entry=history_entry
            )

        logger.info(f"Report {report_id} status {transition['from_status']} -> {target.value} by {actor}")
        self.bus.publish(DomainEvent(
            EventType.STATUS_CHANGED,
            actor=actor,
            report=updated,
            data={"old_status": transition["from_status"], "new_status": target.value}
        ))
        return updated

    def delete_report(self, report_id: str, actor: str) -> None:
        """Owner-only hard delete; the report's comments go with it."""
        report = self._require_report(report_id)
        if report.get("owner") != actor:
            raise ForbiddenError("Not authorized to delete this report")

        self.reports.delete(report_id)
        try:
            removed = self.comments.delete_for_report(report_id)
            logger.info(f"Report {report_id} deleted with {removed} comment(s)")
        except Exception as e:
            logger.warning(f"Report {report_id} deleted but its comments were not: {e}")
