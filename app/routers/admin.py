import logging
import uuid
from typing import List, Literal, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import delete, update
from sqlmodel import Session, func, or_, select

from app.db.db import get_session
from app.models.item import Item
from app.models.notification import Notification
from app.models.post import Comment, Post, PostLike
from app.models.user import User
from app.services.claims import ClaimSummary, list_pending_claims, review_claim
from app.utils.auth_helper import Actor, require_admin
from app.utils.errors import InvalidInput, InvalidState, NotFound
from app.utils.s3_service import with_image_url

router = APIRouter()
logger = logging.getLogger(__name__)


# Response Models
class OverviewStats(BaseModel):
    total_items: int
    lost_items: int
    found_items: int
    resolved_items: int
    high_value_items: int
    claims_pending: int
    claims_resolved: int
    claims_rejected: int
    total_users: int
    total_posts: int


class HighValueItem(BaseModel):
    id: str
    title: str
    location: str
    date: str
    type: str
    status: str
    is_high_value: bool


class UserDetail(BaseModel):
    id: int
    public_id: str
    name: str
    email: str
    image: Optional[str]
    role: str
    created_at: str
    items_posted: int


class UpdateUserRequest(BaseModel):
    name: Optional[str] = None
    role: Optional[Literal["user", "admin"]] = None


def _count(session: Session, *conditions) -> int:
    query = select(func.count(Item.id))
    for condition in conditions:
        query = query.where(condition)
    return session.exec(query).one()


def _user_detail(session: Session, user: User) -> UserDetail:
    items_count = session.exec(
        select(func.count(Item.id)).where(Item.user_id == user.id)
    ).one()

    return UserDetail(
        id=user.id,
        public_id=user.public_id,
        name=user.name,
        email=user.email,
        image=user.image,
        role=user.role,
        created_at=user.created_at.isoformat(),
        items_posted=items_count,
    )


def _get_user(session: Session, public_id: str) -> User:
    user = session.exec(select(User).where(User.public_id == public_id)).first()
    if not user:
        raise NotFound("User not found")
    return user


@router.get("/stats", response_model=OverviewStats)
def get_overview_stats(
    session: Session = Depends(get_session),
    admin: Actor = Depends(require_admin),
):
    """Get overview statistics for the admin dashboard"""
    return OverviewStats(
        total_items=_count(session),
        lost_items=_count(session, Item.type == "lost"),
        found_items=_count(session, Item.type == "found"),
        resolved_items=_count(session, Item.status == "resolved"),
        high_value_items=_count(session, Item.is_high_value == True),  # noqa: E712
        claims_pending=_count(session, Item.status == "claimed"),
        claims_resolved=_count(session, Item.status == "resolved"),
        claims_rejected=_count(session, Item.status == "rejected"),
        total_users=session.exec(select(func.count(User.id))).one(),
        total_posts=session.exec(select(func.count(Post.id))).one(),
    )


@router.get("/high-value-items", response_model=List[HighValueItem])
def get_high_value_items(
    session: Session = Depends(get_session),
    admin: Actor = Depends(require_admin),
):
    items = session.exec(
        select(Item)
        .where(Item.is_high_value == True)  # noqa: E712
        .order_by(Item.created_at.desc())
    ).all()

    return [
        HighValueItem(
            id=str(item.id),
            title=item.title,
            location=item.location,
            date=item.created_at.strftime("%Y-%m-%d"),
            type=item.type,
            status=item.status,
            is_high_value=item.is_high_value,
        )
        for item in items
    ]


@router.get("/claims", response_model=List[ClaimSummary])
def get_claims_for_moderation(
    session: Session = Depends(get_session),
    admin: Actor = Depends(require_admin),
):
    """Get claims awaiting review"""
    return list_pending_claims(session, admin)


@router.post("/claims/{item_id}/{action}")
def moderate_claim(
    item_id: uuid.UUID,
    action: str,
    session: Session = Depends(get_session),
    admin: Actor = Depends(require_admin),
):
    """Approve or reject a claim"""
    if action not in ("approve", "reject"):
        raise InvalidInput("Invalid action")

    decision = "resolved" if action == "approve" else "rejected"
    item = review_claim(session, item_id, admin, decision)

    return with_image_url(item)


@router.get("/users", response_model=List[UserDetail])
def get_users_for_management(
    role: Optional[Literal["user", "admin"]] = None,
    search: Optional[str] = None,
    session: Session = Depends(get_session),
    admin: Actor = Depends(require_admin),
):
    """Get all users"""
    query = select(User)

    if role:
        query = query.where(User.role == role)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

    users = session.exec(query.order_by(User.created_at.desc())).all()

    return [_user_detail(session, user) for user in users]


@router.get("/users/{public_id}", response_model=UserDetail)
def get_user(
    public_id: str,
    session: Session = Depends(get_session),
    admin: Actor = Depends(require_admin),
):
    return _user_detail(session, _get_user(session, public_id))


@router.patch("/users/{public_id}", response_model=UserDetail)
def update_user(
    public_id: str,
    payload: UpdateUserRequest,
    session: Session = Depends(get_session),
    admin: Actor = Depends(require_admin),
):
    user = _get_user(session, public_id)

    if payload.role and user.id == admin.id and payload.role != "admin":
        raise InvalidState("You cannot remove your own admin role")

    if payload.name is not None:
        name = payload.name.strip()
        if not name:
            raise InvalidInput("Name cannot be empty")
        user.name = name

    if payload.role:
        user.role = payload.role

    session.add(user)
    session.commit()
    session.refresh(user)

    logger.info("User %s updated by admin %s", user.public_id, admin.public_id)

    return _user_detail(session, user)


@router.delete("/users/{public_id}")
def delete_user(
    public_id: str,
    session: Session = Depends(get_session),
    admin: Actor = Depends(require_admin),
):
    user = _get_user(session, public_id)

    if user.id == admin.id:
        raise InvalidState("You cannot delete your own account")

    # Reported items become anonymous, claims keep their state and the name/email stored in the claim
    session.execute(update(Item).where(Item.user_id == user.id).values(user_id=None))
    session.execute(update(Item).where(Item.claimant_id == user.id).values(claimant_id=None))

    # Remove everything the user owns
    session.execute(delete(Notification).where(Notification.user_id == user.id))
    session.execute(delete(PostLike).where(PostLike.user_id == user.id))
    session.execute(delete(Comment).where(Comment.user_id == user.id))

    post_ids = session.exec(select(Post.id).where(Post.user_id == user.id)).all()
    if post_ids:
        session.execute(delete(Comment).where(Comment.post_id.in_(post_ids)))
        session.execute(delete(PostLike).where(PostLike.post_id.in_(post_ids)))
        session.execute(delete(Post).where(Post.id.in_(post_ids)))

    session.delete(user)
    session.commit()

    logger.info("User %s deleted by admin %s", public_id, admin.public_id)

    return {"ok": True, "message": "User deleted successfully"}
