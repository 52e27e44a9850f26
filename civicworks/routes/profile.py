"""
Profile routes - the signed-in user's profile, reports, preferences and badges.
"""

from typing import List
from fastapi import APIRouter, Depends
import logging

from civicworks.deps.identity import Identity, get_current_identity
from civicworks.models.base import MessageResponse
from civicworks.models.report import ReportResponse
from civicworks.models.user import (
    BadgeInfo,
    BadgesResponse,
    LanguageUpdate,
    NotificationSettingsUpdate,
    UserResponse,
)
from civicworks.services.container import ServiceContainer, get_container

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["Profile"])
badges_router = APIRouter(tags=["Profile"])


@router.get("", response_model=UserResponse)
async def get_profile(
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    return UserResponse.from_document(container.users.get_profile(identity.user_id))


@router.get("/my-reports", response_model=List[ReportResponse])
async def get_my_reports(
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    """All reports submitted by the user, newest first."""
    return [ReportResponse.from_document(r) for r in container.reports.list_my_reports(identity.user_id)]


@router.delete("/reports/{report_id}", response_model=MessageResponse)
async def delete_my_report(
    report_id: str,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    """Delete one of your own reports together with its comments."""
    container.lifecycle.delete_report(report_id, identity.user_id)
    return MessageResponse(message="Report deleted")


@router.patch("/language", response_model=UserResponse)
async def update_language(
    request: LanguageUpdate,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    return UserResponse.from_document(container.users.update_language(identity.user_id, request.language))


@router.patch("/notification-settings", response_model=UserResponse)
async def update_notification_settings(
    request: NotificationSettingsUpdate,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    """Update notification preferences. Omitted flags keep their value."""
    updated = container.users.update_notification_settings(
        identity.user_id, request.model_dump(exclude_none=True)
    )
    return UserResponse.from_document(updated)


@router.get("/badges", response_model=BadgesResponse)
async def get_my_badges(
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    return BadgesResponse(**container.users.get_badges(identity.user_id))


@router.get("/{user_id}/badges", response_model=BadgesResponse)
async def get_user_badges(user_id: str, container: ServiceContainer = Depends(get_container)):
    """Public badge overview for any user."""
    return BadgesResponse(**container.users.get_badges(user_id))


@badges_router.get("/badges", response_model=List[BadgeInfo])
async def list_badge_catalog(container: ServiceContainer = Depends(get_container)):
    """Every badge that can be earned, in catalog order."""
    return [BadgeInfo(**badge) for badge in container.badges.list_catalog()]
