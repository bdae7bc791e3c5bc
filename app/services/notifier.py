import logging
import uuid
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.models.notification import Notification
from app.models.user import User

logger = logging.getLogger(__name__)


def _check_target(item_id, post_id):
    if item_id is not None and post_id is not None:
        raise ValueError("A notification can reference an item or a post, not both")


def notify_user(
    session: Session,
    user_id: int,
    message: str,
    type: str = "system",
    item_id: Optional[uuid.UUID] = None,
    post_id: Optional[uuid.UUID] = None,
) -> Optional[Notification]:
    """
    Write a single notification.

    Best-effort: a failed write is logged and rolled back, never raised, so the
    action that triggered it keeps its outcome.
    """
    _check_target(item_id, post_id)

    notification = Notification(
        user_id=user_id,
        type=type,
        message=message,
        item_id=item_id,
        post_id=post_id,
    )

    try:
        session.add(notification)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to notify user %s (%s)", user_id, type)
        return None

    return notification


def notify_role(
    session: Session,
    role: str,
    message: str,
    type: str = "system",
    item_id: Optional[uuid.UUID] = None,
    post_id: Optional[uuid.UUID] = None,
) -> int:
    """
    Notify every user holding `role` with one bulk insert.

    Returns the number of notifications written, 0 when the write failed.
    """
    _check_target(item_id, post_id)

    try:
        user_ids = session.exec(select(User.id).where(User.role == role)).all()

        session.add_all([
            Notification(
                user_id=user_id,
                type=type,
                message=message,
                item_id=item_id,
                post_id=post_id,
            )
            for user_id in user_ids
        ])
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to notify role %s (%s)", role, type)
        return 0

    return len(user_ids)
