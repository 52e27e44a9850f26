"""
Escalation Engine - marks reports as emergencies and back.

Escalation is a parallel signal to the status workflow: it never changes a
report's status, only its emergency flag, priority and escalation fields.
Both directions are logged in status_history with the unchanged status.
"""

from datetime import datetime
from typing import Callable, Dict, Optional
import logging

from civicworks.core.exceptions import NotFoundError
from civicworks.models.report import Priority
from civicworks.services.events import DomainEvent, EventBus, EventType
from civicworks.services.status_workflow import StatusWorkflowEngine
from civicworks.stores.base import ReportStore
from civicworks.utils.time import age_in_days, utcnow

logger = logging.getLogger(__name__)

# Report age thresholds (days) for escalation levels
LEVEL_ONE_AGE_DAYS = 7
LEVEL_TWO_AGE_DAYS = 14

DEFAULT_ESCALATION_REASON = "Escalated by user"
DEFAULT_DEESCALATION_REASON = "Marked as non-emergency"


def compute_escalation_level(created_at, now: datetime) -> int:
    """
    Escalation level from report age.

    0 below 7 days, 1 from 7 up to and including 14 days, 2 beyond 14 days.
    """
    age = age_in_days(created_at, now)
    if age < LEVEL_ONE_AGE_DAYS:
        return 0
    if age <= LEVEL_TWO_AGE_DAYS:
        return 1
    return 2


class EscalationEngine:
    """Escalate / de-escalate reports."""

    def __init__(self, reports: ReportStore, bus: EventBus, clock: Callable[[], datetime] = utcnow):
        self.reports = reports
        self.bus = bus
        self.clock = clock

    def _require_report(self, report_id: str) -> Dict:
        report = self.reports.get(report_id)
        if report is None:
            raise NotFoundError("Report", report_id)
        return report

    def escalate(self, report_id: str, actor: str, reason: Optional[str] = None) -> Dict:
        """
        Mark a report as an emergency with critical priority.

        The owner receives an `escalation` notification.
        """
        report = self._require_report(report_id)
        now = self.clock()
        reason = (reason or "").strip() or DEFAULT_ESCALATION_REASON
        level = compute_escalation_level(report.get("created_at"), now)

        updated = self.reports.update(
            report_id,
            {
                "is_emergency": True,
                "priority": Priority.CRITICAL.value,
                "escalated_at": now,
                "escalation_level": level,
                "escalation_reason": reason,
                "updated_at": now,
            },
            history_entry=lambda current: StatusWorkflowEngine.create_status_history_entry(
                status=current.get("status"),
                changed_by=actor,
                timestamp=now,
                note=f"Escalated: {reason}"
            )
        )

        logger.info(f"Report {report_id} escalated to level {level} by {actor}: {reason}")
        self.bus.publish(DomainEvent(EventType.REPORT_ESCALATED, actor=actor, report=updated,
                                     data={"reason": reason, "level": level}))
        return updated

    def de_escalate(self, report_id: str, actor: str, reason: Optional[str] = None) -> Dict:
        """
        Clear the emergency flag. Priority always returns to medium,
        whatever it was before escalation.
        """
        now = self.clock()
        reason = (reason or "").strip() or DEFAULT_DEESCALATION_REASON

        updated = self.reports.update(
            report_id,
            {
                "is_emergency": False,
                "priority": Priority.MEDIUM.value,
                "escalation_level": 0,
                "escalation_reason": None,
                "updated_at": now,
            },
            history_entry=lambda current: StatusWorkflowEngine.create_status_history_entry(
                status=current.get("status"),
                changed_by=actor,
                timestamp=now,
                note=f"De-escalated: {reason}"
            )
        )

        logger.info(f"Report {report_id} de-escalated by {actor}")
        self.bus.publish(DomainEvent(EventType.REPORT_DEESCALATED, actor=actor, report=updated,
                                     data={"reason": reason}))
        return updated
