"""
Status Workflow - report lifecycle states and the status history audit trail.

DESIGN PRINCIPLES:
- Transitions are permissive: any known status may move to any other
  known status, including itself, so only the target value is checked
- Unknown status values are rejected
- Every transition, escalation and de-escalation is logged in status_history
"""

from datetime import datetime
from typing import Dict, Optional

from civicworks.core.exceptions import ValidationError
from civicworks.models.report import ReportStatus


class StatusWorkflowEngine:
    """
    Status parsing and history entries for report transitions.

    Rules:
    - Every known status is reachable from every known status
    - All transitions logged
    """

    INITIAL_STATUS = ReportStatus.PENDING

    @classmethod
    def parse_status(cls, value: str) -> ReportStatus:
        """
        Convert a status string into a ReportStatus.

        Raises:
            ValidationError: If the value is not a known status
        """
        try:
            return ReportStatus((value or "").strip().lower())
        except ValueError:
            allowed = [status.value for status in ReportStatus]
            raise ValidationError(f"Invalid status '{value}'. Allowed: {allowed}", field="status")

    @staticmethod
    def create_status_history_entry(
        status: str,
        changed_by: str,
        timestamp: datetime,
        note: Optional[str] = None
    ) -> Dict:
        """
        Create a status history entry for the audit trail.

        Timestamps are explicit values: Firestore does not accept
        SERVER_TIMESTAMP inside array elements.
        """
        return {
            "status": status,
            "changed_by": changed_by,
            "note": note,
            "timestamp": timestamp,
        }

    @classmethod
    def transition_entry(
        cls,
        from_status: Optional[str],
        to_status: ReportStatus,
        changed_by: str,
        timestamp: datetime,
        note: Optional[str] = None
    ) -> Dict:
        """History entry for a move between two statuses; the note defaults to the move itself."""
        from_status = from_status or cls.INITIAL_STATUS.value
        return cls.create_status_history_entry(
            status=to_status.value,
            changed_by=changed_by,
            timestamp=timestamp,
            note=note or f"Status changed from {from_status} to {to_status.value}"
        )
