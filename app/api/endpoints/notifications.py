from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session
from typing import List
from app.models.notification import Notification
from app.schemas.notification import NotificationRead
from app.api.endpoints.auth import get_org_context
from app.core.tenancy import OrgContext, get_scoped
from app.database import get_session
from app.services import notification_service

router = APIRouter()


@router.get("/", response_model=List[NotificationRead])
def list_notifications(
    unread_only: bool = False,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    return notification_service.list_for_user(session, ctx.org_id, ctx.user_id, unread_only=unread_only)


@router.post("/{notification_id}/read", response_model=NotificationRead)
def mark_notification_read(
    notification_id: int,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    notification = get_scoped(session, Notification, notification_id, ctx)
    if not notification or notification.user_id != ctx.user_id:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification_service.mark_read(session, notification)
