"""
Report endpoints - submission, listing, lifecycle and escalation.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
import logging

from civicworks.core.exceptions import CivicWorksError
from civicworks.core.settings import settings
from civicworks.deps.identity import Identity, get_current_identity, get_optional_identity
from civicworks.models.report import (
    EscalationRequest,
    ReportCreate,
    ReportListResponse,
    ReportResponse,
    StatusUpdateRequest,
    ViewResponse,
)
from civicworks.services.container import ServiceContainer, get_container

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.post("", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def submit_report(
    report: ReportCreate,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    """
    Submit a new citizen report.

    Photos are URLs of already-uploaded files. Emergencies are created
    escalated with critical priority.
    """
    try:
        logger.info(f"POST /reports - category={report.category}, emergency={report.is_emergency}")
        created = container.lifecycle.create_report(
            owner=identity.user_id,
            category=report.category,
            description=report.description,
            lat=report.lat,
            lng=report.lng,
            photos=report.photos,
            is_emergency=report.is_emergency,
            priority=report.priority.value if report.priority else None
        )
        return ReportResponse.from_document(created)
    except CivicWorksError:
        raise
    except Exception as e:
        logger.error(f"POST /reports - Report creation failed: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Report creation failed"
        )


@router.get("", response_model=ReportListResponse)
async def list_reports(
    search: Optional[str] = Query(None, description="Text search over category and description"),
    category: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    is_emergency: Optional[bool] = Query(None),
    lat: Optional[float] = Query(None, description="Center latitude for area search"),
    lng: Optional[float] = Query(None, description="Center longitude for area search"),
    radius: Optional[float] = Query(None, description="Search radius in km"),
    owner: Optional[str] = Query(None),
    sort_by: str = Query("created_at", description="created_at, view_count, likes or priority"),
    sort_order: str = Query("desc", description="asc or desc"),
    page: int = Query(1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, description="Page size (max 100)"),
    container: ServiceContainer = Depends(get_container)
):
    """List reports with filters, sorting and pagination."""
    result = container.reports.list_reports(
        search=search,
        category=category,
        status=status_filter,
        priority=priority,
        is_emergency=is_emergency,
        lat=lat,
        lng=lng,
        radius_km=radius,
        owner=owner,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit
    )
    return ReportListResponse(
        reports=[ReportResponse.from_document(r) for r in result["reports"]],
        total=result["total"],
        page=result["page"],
        pages=result["pages"],
    )


@router.get("/{report_id}", response_model=ReportResponse)
async def get_report(report_id: str, container: ServiceContainer = Depends(get_container)):
    return ReportResponse.from_document(container.reports.get_report(report_id))


@router.post("/{report_id}/view", response_model=ViewResponse)
async def record_view(
    report_id: str,
    identity: Optional[Identity] = Depends(get_optional_identity),
    container: ServiceContainer = Depends(get_container)
):
    """
    Count a view. Signed-in users count once per report; anonymous views
    always count.
    """
    result = container.engagement.record_view(report_id, identity.user_id if identity else None)
    return ViewResponse(**result)


@router.patch("/{report_id}/status", response_model=ReportResponse)
async def update_report_status(
    report_id: str,
    request: StatusUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    """
    Move a report to a new status.

    Any status may follow any other. The change is recorded in the report's
    status_history and the owner is notified.
    """
    updated = container.lifecycle.update_status(
        report_id,
        request.status,
        actor=identity.user_id,
        note=request.note,
        after_photos=request.after_photos
    )
    return ReportResponse.from_document(updated)


@router.post("/{report_id}/escalate", response_model=ReportResponse)
async def escalate_report(
    report_id: str,
    request: Optional[EscalationRequest] = None,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    """Mark a report as an emergency with critical priority."""
    updated = container.escalation.escalate(
        report_id, actor=identity.user_id, reason=request.reason if request else None
    )
    return ReportResponse.from_document(updated)


@router.post("/{report_id}/de-escalate", response_model=ReportResponse)
async def de_escalate_report(
    report_id: str,
    request: Optional[EscalationRequest] = None,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    """Clear a report's emergency flag and reset it to medium priority."""
    updated = container.escalation.de_escalate(
        report_id, actor=identity.user_id, reason=request.reason if request else None
    )
    return ReportResponse.from_document(updated)
