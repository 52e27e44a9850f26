"""
Notification routes - the signed-in user's inbox.
"""

from fastapi import APIRouter, Depends, Query

from civicworks.core.settings import settings
from civicworks.deps.identity import Identity, get_current_identity
from civicworks.models.base import MessageResponse
from civicworks.models.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
)
from civicworks.services.container import ServiceContainer, get_container

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE),
    unread_only: bool = Query(False, description="Only unread notifications"),
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    """Get the user's notifications, newest first, with the unread count."""
    result = container.dispatcher.list_notifications(
        identity.user_id, page=page, limit=limit, unread_only=unread_only
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.from_document(n) for n in result["notifications"]],
        total=result["total"],
        unread_count=result["unread_count"],
        page=result["page"],
        pages=result["pages"],
    )


# Declared before /{notification_id}/read so "read-all" is not taken as an id
@router.patch("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    updated = container.dispatcher.mark_all_read(identity.user_id)
    return MarkAllReadResponse(message="All notifications marked as read", updated=updated)


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: str,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    notification = container.dispatcher.mark_read(notification_id, identity.user_id)
    return NotificationResponse.from_document(notification)


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: str,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container)
):
    container.dispatcher.delete_notification(notification_id, identity.user_id)
    return MessageResponse(message="Notification deleted")
