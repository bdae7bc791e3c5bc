import logging
import uuid
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel
from sqlalchemy import delete, not_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.models.post import Comment, Post, PostLike
from app.models.user import User
from app.services.notifier import notify_user
from app.utils.auth_helper import Actor
from app.utils.errors import AlreadyDone, Forbidden, InvalidInput, InvalidState, NotFound

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "content", "category", "location")
REQUIRED_FIELDS = ("title", "content", "category")


class PostCreate(BaseModel):
    title: str
    content: str
    category: str
    location: Optional[str] = None
    item_id: Optional[uuid.UUID] = None


class PostUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None


class CommentRead(BaseModel):
    id: int
    user_id: Optional[str]
    user_name: str
    content: str
    created_at: datetime


class PostRead(BaseModel):
    id: uuid.UUID
    title: str
    content: str
    category: str
    location: Optional[str]
    is_resolved: bool
    item_id: Optional[uuid.UUID]
    created_at: datetime
    author_id: Optional[str]
    author_name: str
    likes: List[str]
    comments: List[CommentRead]


def _get_post(session: Session, post_id: uuid.UUID) -> Post:
    post = session.get(Post, post_id)
    if not post:
        raise NotFound("Post not found")
    return post


def _can_manage(post: Post, actor: Actor) -> bool:
    return actor.is_admin or post.user_id == actor.id


def _title_excerpt(title: str) -> str:
    return title[:30] + ("..." if len(title) > 30 else "")


def get_likes(session: Session, post_id: uuid.UUID) -> List[str]:
    """Public ids of the users who liked the post, most recent first."""
    return list(session.exec(
        select(User.public_id)
        .join(PostLike, PostLike.user_id == User.id)
        .where(PostLike.post_id == post_id)
        .order_by(PostLike.created_at.desc(), PostLike.id.desc())
    ).all())


def get_comments(session: Session, post_id: uuid.UUID) -> List[CommentRead]:
    """Comments on the post, most recent first."""
    results = session.exec(
        select(Comment, User)
        .join(User, Comment.user_id == User.id, isouter=True)
        .where(Comment.post_id == post_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    ).all()

    return [
        CommentRead(
            id=comment.id,
            user_id=user.public_id if user else None,
            user_name=user.name if user else "Deleted user",
            content=comment.content,
            created_at=comment.created_at,
        )
        for comment, user in results
    ]


def to_post_read(session: Session, post: Post) -> PostRead:
    author = session.get(User, post.user_id)

    return PostRead(
        id=post.id,
        title=post.title,
        content=post.content,
        category=post.category,
        location=post.location,
        is_resolved=post.is_resolved,
        item_id=post.item_id,
        created_at=post.created_at,
        author_id=author.public_id if author else None,
        author_name=author.name if author else "Deleted user",
        likes=get_likes(session, post.id),
        comments=get_comments(session, post.id),
    )


def _clean(field: str, value: Optional[str]) -> Optional[str]:
    if value is None:
        if field in REQUIRED_FIELDS:
            raise InvalidInput(f"{field.capitalize()} is required")
        return None

    value = value.strip()

    if not value:
        if field in REQUIRED_FIELDS:
            raise InvalidInput(f"{field.capitalize()} is required")
        return None

    return value


def create_post(session: Session, actor: Actor, payload: PostCreate) -> Post:
    post = Post(
        user_id=actor.id,
        title=_clean("title", payload.title),
        content=_clean("content", payload.content),
        category=_clean("category", payload.category),
        location=_clean("location", payload.location),
        item_id=payload.item_id,
    )

    session.add(post)
    session.commit()
    session.refresh(post)

    logger.info("Post %s created by user %s", post.id, actor.public_id)

    return post


def update_post(session: Session, post_id: uuid.UUID, actor: Actor, payload: PostUpdate) -> Post:
    post = _get_post(session, post_id)

    if not _can_manage(post, actor):
        raise Forbidden("Not authorized")

    # Only the fields present in the request are touched
    updates = payload.model_dump(exclude_unset=True)

    for field in EDITABLE_FIELDS:
        if field in updates:
            setattr(post, field, _clean(field, updates[field]))

    session.add(post)
    session.commit()
    session.refresh(post)

    return post


def delete_post(session: Session, post_id: uuid.UUID, actor: Actor) -> None:
    post = _get_post(session, post_id)

    if not _can_manage(post, actor):
        raise Forbidden("Not authorized")

    # Delete owned comments and likes first
    session.execute(delete(Comment).where(Comment.post_id == post.id))
    session.execute(delete(PostLike).where(PostLike.post_id == post.id))

    session.delete(post)
    session.commit()

    logger.info("Post %s deleted by user %s", post_id, actor.public_id)


def like_post(session: Session, post_id: uuid.UUID, actor: Actor) -> List[str]:
    post = _get_post(session, post_id)

    already_liked = session.exec(
        select(PostLike)
        .where(PostLike.post_id == post.id)
        .where(PostLike.user_id == actor.id)
    ).first()

    if already_liked:
        raise AlreadyDone("Post already liked")

    try:
        session.add(PostLike(post_id=post.id, user_id=actor.id))
        session.commit()
    except IntegrityError:
        # A concurrent request liked it first
        session.rollback()
        raise AlreadyDone("Post already liked")

    if post.user_id != actor.id:
        notify_user(
            session,
            post.user_id,
            f'{actor.name} liked your post: "{_title_excerpt(post.title)}"',
            type="post_liked",
            post_id=post.id,
        )

    return get_likes(session, post.id)


def unlike_post(session: Session, post_id: uuid.UUID, actor: Actor) -> List[str]:
    post = _get_post(session, post_id)

    result = session.execute(
        delete(PostLike)
        .where(PostLike.post_id == post.id)
        .where(PostLike.user_id == actor.id)
    )

    if result.rowcount == 0:
        session.rollback()
        raise InvalidState("Post has not yet been liked")

    session.commit()

    return get_likes(session, post.id)


def add_comment(session: Session, post_id: uuid.UUID, actor: Actor, content: Optional[str]) -> List[CommentRead]:
    post = _get_post(session, post_id)

    content = (content or "").strip()
    if not content:
        raise InvalidInput("Comment content is required")

    session.add(Comment(post_id=post.id, user_id=actor.id, content=content))
    session.commit()

    if post.user_id != actor.id:
        notify_user(
            session,
            post.user_id,
            f'{actor.name} commented on your post: "{_title_excerpt(post.title)}"',
            type="post_commented",
            post_id=post.id,
        )

    return get_comments(session, post.id)


def delete_comment(session: Session, post_id: uuid.UUID, comment_id: int, actor: Actor) -> List[CommentRead]:
    post = _get_post(session, post_id)

    comment = session.exec(
        select(Comment)
        .where(Comment.id == comment_id)
        .where(Comment.post_id == post.id)
    ).first()

    if not comment:
        raise NotFound("Comment not found")

    if comment.user_id != actor.id and not _can_manage(post, actor):
        raise Forbidden("Not authorized")

    session.delete(comment)
    session.commit()

    return get_comments(session, post.id)


def resolve_post(session: Session, post_id: uuid.UUID, actor: Actor) -> Post:
    post = _get_post(session, post_id)

    if not _can_manage(post, actor):
        raise Forbidden("Not authorized")

    # Toggle in the database so concurrent toggles are not lost
    session.execute(
        update(Post)
        .where(Post.id == post.id)
        .values(is_resolved=not_(Post.is_resolved))
        .execution_options(synchronize_session=False)
    )
    session.commit()

    session.refresh(post)
    return post
