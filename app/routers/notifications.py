import uuid
from fastapi import APIRouter, Depends, Query
from sqlalchemy import delete, update
from sqlmodel import Session, func, select

from app.db.db import get_session
from app.models.item import Item
from app.models.notification import Notification
from app.models.post import Post
from app.utils.auth_helper import Actor, get_actor
from app.utils.errors import NotFound


router = APIRouter()

CLAIM_TYPES = {"claim_created", "claim_review_required", "claim_approved", "claim_rejected"}


def format_notification(notif: Notification, item, post) -> dict:
    """
    Frontend view of a notification.

    Title and link are derived from the referenced item or post at read time;
    a reference to a deleted item or post falls back to a system notification.
    """
    if item is not None:
        title = "Claim Status Update" if notif.type in CLAIM_TYPES else f"Activity on your {item.type} item"
        link = f"/items/{item.id}"
    elif post is not None:
        title = "Community Activity"
        link = f"/community/{post.id}"
    else:
        title = "System Notification"
        link = "/"

    return {
        "id": str(notif.id),
        "title": title,
        "description": notif.message,
        "timestamp": notif.created_at,
        "read": notif.is_read,
        "type": notif.type,
        "link": link,
    }


@router.get("/")
async def get_my_notifications(
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = False,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    query = (
        select(Notification, Item, Post)
        .join(Item, Notification.item_id == Item.id, isouter=True)
        .join(Post, Notification.post_id == Post.id, isouter=True)
        .where(Notification.user_id == actor.id)
        .order_by(Notification.created_at.desc())
        .limit(limit)
    )

    if unread_only:
        query = query.where(Notification.is_read == False)  # noqa: E712

    results = session.exec(query).all()

    return {
        "notifications": [format_notification(notif, item, post) for notif, item, post in results],
    }


@router.get("/count")
async def get_unread_notifications_count(
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    count = session.exec(
        select(func.count(Notification.id))
        .where(Notification.user_id == actor.id)
        .where(Notification.is_read == False)  # noqa: E712
    ).one()

    return {"count": count}


@router.post("/mark-all-read")
async def mark_all_notifications_read(
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    session.execute(
        update(Notification)
        .where(Notification.user_id == actor.id)
        .where(Notification.is_read == False)  # noqa: E712
        .values(is_read=True)
    )
    session.commit()

    return {"ok": True}


@router.delete("/clear-all")
async def clear_all_notifications(
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    result = session.execute(
        delete(Notification).where(Notification.user_id == actor.id)
    )
    session.commit()

    return {"ok": True, "deleted": result.rowcount}


def _get_own_notification(session: Session, notification_id: uuid.UUID, actor: Actor) -> Notification:
    notif = session.exec(
        select(Notification)
        .where(Notification.id == notification_id)
        .where(Notification.user_id == actor.id)
    ).first()

    if not notif:
        raise NotFound("Notification not found")

    return notif


@router.post("/{notification_id}/mark-read")
async def mark_notification_read(
    notification_id: uuid.UUID,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    notif = _get_own_notification(session, notification_id, actor)

    notif.is_read = True
    session.add(notif)
    session.commit()

    return {"ok": True}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: uuid.UUID,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    notif = _get_own_notification(session, notification_id, actor)

    session.delete(notif)
    session.commit()

    return {"ok": True}
