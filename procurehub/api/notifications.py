"""
Notification API routes. Users only ever see their own notifications.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from sqlalchemy import desc

from procurehub.db.session import get_db
from procurehub.db.models import Notification
from procurehub.core.rbac import get_current_user_context
from procurehub.schemas.approvals import NotificationResponse

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


def get_own_notification(db: Session, user_id: int, notification_id: int) -> Notification:
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id,
    ).first()
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, le=200),
    user_context: dict = Depends(get_current_user_context),
    db: Session = Depends(get_db)
):
    query = db.query(Notification).filter(Notification.user_id == user_context["user_id"])
    if unread_only:
        query = query.filter(Notification.is_read == False)  # noqa: E712
    return query.order_by(desc(Notification.created_at), desc(Notification.id)).limit(limit).all()


@router.get("/unread-count")
async def unread_count(
    user_context: dict = Depends(get_current_user_context),
    db: Session = Depends(get_db)
):
    count = db.query(Notification).filter(
        Notification.user_id == user_context["user_id"],
        Notification.is_read == False,  # noqa: E712
    ).count()
    return {"unread": count}


@router.post("/read-all")
async def mark_all_read(
    user_context: dict = Depends(get_current_user_context),
    db: Session = Depends(get_db)
):
    updated = db.query(Notification).filter(
        Notification.user_id == user_context["user_id"],
        Notification.is_read == False,  # noqa: E712
    ).update({Notification.is_read: True}, synchronize_session=False)
    db.commit()
    return {"updated": updated}


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int,
    user_context: dict = Depends(get_current_user_context),
    db: Session = Depends(get_db)
):
    notification = get_own_notification(db, user_context["user_id"], notification_id)
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    user_context: dict = Depends(get_current_user_context),
    db: Session = Depends(get_db)
):
    notification = get_own_notification(db, user_context["user_id"], notification_id)
    db.delete(notification)
    db.commit()
    return {"message": "Notification deleted"}
