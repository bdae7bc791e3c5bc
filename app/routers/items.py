import logging
import uuid
from typing import Literal, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel
from sqlmodel import Session, or_, select

from app.db.db import get_session
from app.models.item import Item
from app.models.user import User
from app.services.claims import ClaimDetails, list_pending_claims, review_claim, submit_claim
from app.utils.auth_helper import Actor, get_actor, get_actor_optional
from app.utils.errors import Forbidden, NotFound
from app.utils.form_validator import ITEM_CATEGORIES, parse_date, validate_create_item_form
from app.utils.s3_service import compress_image, delete_s3_object, get_all_urls, upload_to_s3, with_image_url


router = APIRouter()
logger = logging.getLogger(__name__)

MAX_UPLOAD_SIZE_MB = 5
MAX_UPLOAD_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024


class ClaimRequest(BaseModel):
    description: str = ""
    contactInfo: str = ""
    proofDetails: str = ""


class ReviewRequest(BaseModel):
    status: str


def _get_owned_item(session: Session, item_id: uuid.UUID, actor: Actor, action: str) -> Item:
    item = session.get(Item, item_id)

    if not item:
        raise NotFound("Item not found")

    # ownership check
    if not actor.is_admin and (item.user_id is None or item.user_id != actor.id):
        raise Forbidden(f"Unauthorized to {action} this item")

    return item


@router.post("/create")
async def add_item(
    item_type: str = Form(...),
    title: str = Form(...),
    description: str = Form(...),
    category: str = Form(...),
    date: str = Form(...),
    location: str = Form(...),
    contact_method: Optional[str] = Form(None),
    is_high_value: bool = Form(False),
    is_anonymous: bool = Form(False),
    image: Optional[UploadFile] = File(None),
    session: Session = Depends(get_session),
    actor: Optional[Actor] = Depends(get_actor_optional),
):
    form = validate_create_item_form(
        item_type=item_type,
        title=title,
        description=description,
        category=category,
        date=date,
        location=location,
        contact_method=contact_method,
    )

    # read image into memory and upload
    image_key = None

    if image is not None and image.filename:
        raw_bytes = await image.read()

        if len(raw_bytes) > MAX_UPLOAD_BYTES:
            raise HTTPException(status_code=400, detail=f"Image exceeds {MAX_UPLOAD_SIZE_MB}MB limit")

        buffer, ext = compress_image(raw_bytes)
        image_key = upload_to_s3(buffer, ext, image.filename)

    db_item = Item(
        user_id=None if actor is None or is_anonymous else actor.id,
        title=form.title,
        description=form.description,
        category=form.category,
        date=form.date,
        location=form.location,
        type=form.item_type,
        contact_method=form.contact_method,
        is_high_value=is_high_value,
        image=image_key,
    )

    session.add(db_item)
    session.commit()
    session.refresh(db_item)

    logger.info("Item %s reported (%s)", db_item.id, db_item.type)

    return {"id": str(db_item.id)}


@router.get("/")
async def get_items(
    type: Optional[Literal["lost", "found"]] = None,
    category: Optional[str] = None,
    status: Optional[Literal["pending", "claimed", "resolved", "rejected"]] = None,
    search: Optional[str] = None,
    session: Session = Depends(get_session),
):
    # only open items unless a status is asked for
    query = select(Item).where(Item.status == (status or "pending"))

    if type:
        query = query.where(Item.type == type)

    if category:
        query = query.where(Item.category == category)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(
                Item.title.ilike(pattern),
                Item.description.ilike(pattern),
                Item.location.ilike(pattern),
            )
        )

    items = session.exec(query.order_by(Item.created_at.desc())).all()

    return {
        "items": get_all_urls(items),
    }


@router.get("/claims/pending")
def get_pending_claims(
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return list_pending_claims(session, actor)


@router.get("/{item_id}")
async def get_item(
    item_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    item = session.get(Item, item_id)
    if not item:
        raise NotFound("Item not found")

    reporter = session.get(User, item.user_id) if item.user_id is not None else None

    return {
        "item": with_image_url(item),
        "reporter": {
            "public_id": reporter.public_id,
            "name": reporter.name,
            "image": reporter.image,
        } if reporter else None,
    }


@router.patch("/{item_id}")
async def update_item(
    item_id: uuid.UUID,
    updates: dict,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    item = _get_owned_item(session, item_id, actor, "edit")

    ALLOWED_FIELDS = {
        "title",
        "location",
        "description",
        "category",
        "date",
        "contact_method",
    }

    for field, value in updates.items():
        if field not in ALLOWED_FIELDS:
            raise HTTPException(
                status_code=400,
                detail=f"Field '{field}' cannot be updated",
            )

        if not isinstance(value, str):
            raise HTTPException(
                status_code=400,
                detail=f"Field '{field}' must be a string",
            )

        if field == "date":
            value = parse_date(value)
        elif field == "contact_method":
            value = value.strip() or None
        else:
            value = value.strip()

            if not value:
                raise HTTPException(
                    status_code=400,
                    detail=f"Field '{field}' cannot be empty",
                )

            if field == "category" and value not in ITEM_CATEGORIES:
                raise HTTPException(status_code=400, detail="Invalid category option")

        setattr(item, field, value)

    session.add(item)
    session.commit()
    session.refresh(item)

    return with_image_url(item)


@router.delete("/{item_id}")
async def delete_item(
    item_id: uuid.UUID,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    item = _get_owned_item(session, item_id, actor, "delete")

    image_key = item.image

    # notifications referencing the item are kept and resolved at read time
    session.delete(item)
    session.commit()

    delete_s3_object(image_key)

    logger.info("Item %s deleted by user %s", item_id, actor.public_id)

    return {"ok": True}


@router.post("/{item_id}/claim")
def claim_item(
    item_id: uuid.UUID,
    payload: ClaimRequest,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    item = submit_claim(
        session,
        item_id,
        actor,
        ClaimDetails(
            description=payload.description,
            contact_info=payload.contactInfo,
            proof_details=payload.proofDetails,
        ),
    )

    return with_image_url(item)


@router.post("/{item_id}/review")
def review_item_claim(
    item_id: uuid.UUID,
    payload: ReviewRequest,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    item = review_claim(session, item_id, actor, payload.status)

    return with_image_url(item)
