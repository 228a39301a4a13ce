"""
In-app notifications. Delivery over email/SMS/push is not handled here.
"""
from typing import Optional

from sqlalchemy.orm import Session

from procurehub.core.logging import get_logger
from procurehub.db.models import Notification, NotificationType

logger = get_logger(__name__)


def notify(
    db: Session,
    user_id: int,
    title: str,
    message: Optional[str] = None,
    type: NotificationType = NotificationType.INFO,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
) -> Notification:
    """Queue a notification row for ``user_id`` in the caller's transaction."""
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type.value,
        is_read=False,
        entity_type=entity_type,
        entity_id=entity_id,
    )
    db.add(notification)
    logger.debug(f"Notification queued for user {user_id}: {title}")
    return notification
