from typing import Optional
import uuid
from sqlmodel import Field, SQLModel, UniqueConstraint
from datetime import datetime, timezone


class Post(SQLModel, table=True):
    __tablename__ = "posts"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Author
    user_id: int = Field(foreign_key="users.id", index=True)

    # Post fields
    title: str
    content: str
    category: str
    location: Optional[str] = Field(default=None)
    is_resolved: bool = Field(default=False)

    item_id: Optional[uuid.UUID] = Field(default=None, index=True)


class Comment(SQLModel, table=True):
    __tablename__ = "post_comments"

    # Insertion sequence, also the tie-break for most-recent-first ordering
    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    post_id: uuid.UUID = Field(foreign_key="posts.id", index=True, ondelete="CASCADE")
    user_id: int = Field(foreign_key="users.id")

    content: str


class PostLike(SQLModel, table=True):
    __tablename__ = "post_likes"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    post_id: uuid.UUID = Field(foreign_key="posts.id", index=True, ondelete="CASCADE")
    user_id: int = Field(foreign_key="users.id", index=True)

    __table_args__ = (
        # A user can like the same post only once
        UniqueConstraint(
            "post_id",
            "user_id",
            name="uq_post_like_user"
        ),
    )
