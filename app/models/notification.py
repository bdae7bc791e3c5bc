from typing import Optional
import uuid
from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Ownership
    user_id: int = Field(foreign_key="users.id", index=True)

    # Notification fields
    # values: "claim_created", "claim_review_required", "claim_approved", "claim_rejected",
    # "post_liked", "post_commented", "system"
    type: str = Field(default="system", index=True)

    message: str

    # Weak references, left dangling when the item or post is deleted
    item_id: Optional[uuid.UUID] = Field(default=None, index=True)
    post_id: Optional[uuid.UUID] = Field(default=None, index=True)

    is_read: bool = Field(default=False)

    __table_args__ = (
        CheckConstraint(
            "item_id IS NULL OR post_id IS NULL",
            name="ck_notification_single_target",
        ),
    )
