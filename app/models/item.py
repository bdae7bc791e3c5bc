from typing import Optional
import uuid
from sqlalchemy import Column, JSON
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone
from pydantic import BaseModel


ITEM_STATUSES = ("pending", "claimed", "resolved", "rejected")


class Claim(BaseModel):
    """Claim details embedded in an item once someone asserts ownership."""

    description: str = ""
    contact_info: str = ""
    proof_details: str = ""
    submitted_at: Optional[datetime] = None

    # kept so the claim stays attributable after the claimant account is gone
    claimant_name: Optional[str] = None
    claimant_email: Optional[str] = None


class Item(SQLModel, table=True):
    __tablename__ = "items"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Reporter info, None for anonymous reports
    user_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)

    # Item fields
    title: str
    category: str
    description: str
    location: str
    type: str  # "lost" or "found"
    date: datetime
    image: Optional[str] = Field(default=None)  # storage key
    contact_method: Optional[str] = Field(default=None)
    is_high_value: bool = Field(default=False)

    # Claim cycle
    status: str = Field(default="pending", index=True)  # values: "pending", "claimed", "resolved", "rejected"
    claimant_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)
    claim: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    def get_claim(self) -> Optional[Claim]:
        if not self.claim:
            return None
        return Claim.model_validate(self.claim)
