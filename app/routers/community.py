import uuid
from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session, or_, select

from app.db.db import get_session
from app.models.post import Post
from app.models.user import User
from app.services import community
from app.services.community import PostCreate, PostUpdate
from app.utils.auth_helper import Actor, get_actor
from app.utils.errors import NotFound


router = APIRouter()


class CommentCreate(BaseModel):
    content: Optional[str] = None


@router.get("/")
def get_posts(
    search: Optional[str] = None,
    resolved: Optional[bool] = None,
    user: Optional[str] = None,
    session: Session = Depends(get_session),
):
    query = select(Post)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(Post.title.ilike(pattern), Post.content.ilike(pattern)))

    if resolved is not None:
        query = query.where(Post.is_resolved == resolved)

    if user:
        query = query.join(User, User.id == Post.user_id).where(User.public_id == user)

    posts = session.exec(query.order_by(Post.created_at.desc())).all()

    return {
        "posts": [community.to_post_read(session, post) for post in posts],
    }


@router.post("/", status_code=201)
def create_post(
    payload: PostCreate,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    post = community.create_post(session, actor, payload)
    return community.to_post_read(session, post)


@router.get("/{post_id}")
def get_post(
    post_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    post = session.get(Post, post_id)
    if not post:
        raise NotFound("Post not found")

    return community.to_post_read(session, post)


@router.put("/{post_id}")
def update_post(
    post_id: uuid.UUID,
    payload: PostUpdate,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    post = community.update_post(session, post_id, actor, payload)
    return community.to_post_read(session, post)


@router.delete("/{post_id}")
def delete_post(
    post_id: uuid.UUID,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    community.delete_post(session, post_id, actor)
    return {"message": "Post removed"}


@router.post("/{post_id}/like")
def like_post(
    post_id: uuid.UUID,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return {"likes": community.like_post(session, post_id, actor)}


@router.delete("/{post_id}/like")
def unlike_post(
    post_id: uuid.UUID,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return {"likes": community.unlike_post(session, post_id, actor)}


@router.post("/{post_id}/comments")
def add_comment(
    post_id: uuid.UUID,
    payload: CommentCreate,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return {"comments": community.add_comment(session, post_id, actor, payload.content)}


@router.delete("/{post_id}/comments/{comment_id}")
def delete_comment(
    post_id: uuid.UUID,
    comment_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return {"comments": community.delete_comment(session, post_id, comment_id, actor)}


@router.put("/{post_id}/resolve")
def resolve_post(
    post_id: uuid.UUID,
    session: Session = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    post = community.resolve_post(session, post_id, actor)
    return community.to_post_read(session, post)
