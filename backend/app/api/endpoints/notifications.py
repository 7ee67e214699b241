from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import Requester, get_notification_service, get_requester
from app.schemas.notification import MarkAllReadResponse, NotificationResponse
from app.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
def list_notifications(
    unread_only: bool = False,
    requester: Requester = Depends(get_requester),
    service: NotificationService = Depends(get_notification_service),
):
    return service.list_for(requester.id, unread_only=unread_only)


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
    notification_id: int,
    requester: Requester = Depends(get_requester),
    service: NotificationService = Depends(get_notification_service),
):
    notification = service.mark_read(notification_id, requester.id)
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.post("/read-all", response_model=MarkAllReadResponse)
def mark_all_read(
    requester: Requester = Depends(get_requester),
    service: NotificationService = Depends(get_notification_service),
):
    return MarkAllReadResponse(updated=service.mark_all_read(requester.id))
