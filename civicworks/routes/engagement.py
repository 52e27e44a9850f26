"""
Engagement routes - likes, dislikes, false-report flags and comments.
"""

from typing import List
from fastapi import APIRouter, Depends, status
import logging

from civicworks.deps.identity import Identity, get_current_identity
from civicworks.models.base import MessageResponse
from civicworks.models.comment import CommentCreate, CommentResponse
from civicworks.models.report import FalseReportResponse, ReactionResponse
from civicworks.services.container import ServiceContainer, get_container

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Engagement"])


@router.post("/reports/{report_id}/like", response_model=ReactionResponse)
async def like_report(
    report_id: str,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    """
    Like a report, or remove your like (toggle).

    Liking removes an existing dislike by the same user.
    """
    return ReactionResponse(**container.engagement.toggle_like(report_id, identity.user_id))


@router.post("/reports/{report_id}/dislike", response_model=ReactionResponse)
async def dislike_report(
    report_id: str,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    return ReactionResponse(**container.engagement.toggle_dislike(report_id, identity.user_id))


@router.post("/reports/{report_id}/report-false", response_model=FalseReportResponse)
async def report_false(
    report_id: str,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    """Flag a report as false, or withdraw your flag (toggle)."""
    return FalseReportResponse(**container.engagement.toggle_false_report(report_id, identity.user_id))


@router.post(
    "/reports/{report_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED
)
async def add_comment(
    report_id: str,
    comment: CommentCreate,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    """Add a comment to a report. The report owner is notified."""
    created = container.comments.add_comment(report_id, identity.user_id, comment.text)
    return CommentResponse.from_document(created)


@router.get("/reports/{report_id}/comments", response_model=List[CommentResponse])
async def get_report_comments(report_id: str, container: ServiceContainer = Depends(get_container)):
    """
    Get all comments for a report.

    Returns comments sorted by creation time (newest first).
    """
    container.reports.get_report(report_id)
    return [CommentResponse.from_document(c) for c in container.comments.get_comments(report_id)]


@router.delete("/comments/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    comment_id: str,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    container.comments.delete_comment(comment_id, identity.user_id)
    return MessageResponse(message="Comment deleted")
