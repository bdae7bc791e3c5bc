import logging
from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session, select

from app.db.db import get_session
from app.models.item import Item
from app.models.user import User
from app.utils.auth_helper import Actor, get_actor
from app.utils.errors import InvalidInput
from app.utils.s3_service import get_all_urls


logger = logging.getLogger(__name__)

router = APIRouter()


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = None
    image: Optional[str] = None


def _profile(user: User) -> dict:
    return {
        "public_id": user.public_id,
        "name": user.name,
        "email": user.email,
        "image": user.image,
        "role": user.role,
        "created_at": user.created_at,
    }


@router.get("/me")
async def get_my_profile(
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return _profile(session.get(User, actor.id))


@router.patch("/me")
async def update_my_profile(
    payload: UpdateProfileRequest,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    """Update own name and picture, role changes go through the admin console"""
    user = session.get(User, actor.id)

    if payload.name is not None:
        name = payload.name.strip()
        if not name:
            raise InvalidInput("Name cannot be empty")
        user.name = name

    if payload.image is not None:
        user.image = payload.image.strip() or None

    session.add(user)
    session.commit()
    session.refresh(user)

    logger.info("User %s updated their profile", user.public_id)

    return _profile(user)


@router.get("/items")
async def get_my_items(
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    items = session.exec(
        select(Item)
        .where(Item.user_id == actor.id)
        .order_by(Item.created_at.desc())
    ).all()

    # Separate by type
    lost_items = [item for item in items if item.type == "lost"]
    found_items = [item for item in items if item.type == "found"]

    return {
        "lost_items": get_all_urls(lost_items),
        "found_items": get_all_urls(found_items),
    }


@router.get("/claims")
async def get_my_claims(
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    items = session.exec(
        select(Item)
        .where(Item.claimant_id == actor.id)
        .order_by(Item.created_at.desc())
    ).all()

    return {"items": get_all_urls(items)}
