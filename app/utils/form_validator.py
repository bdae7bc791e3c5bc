from datetime import datetime
from typing import Literal, Optional
from fastapi import HTTPException
from pydantic import BaseModel, Field, ValidationError


ITEM_CATEGORIES = (
    "electronics",
    "stationery",
    "accessories",
    "documents",
    "clothing",
    "other",
)


class ValidatedCreateItem(BaseModel):
    item_type: Literal["lost", "found"]
    title: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=1, max_length=1000)
    category: Literal[
        "electronics",
        "stationery",
        "accessories",
        "documents",
        "clothing",
        "other",
    ]
    date: datetime
    location: str = Field(min_length=2, max_length=100)
    contact_method: Optional[str] = Field(default=None, max_length=200)


def parse_date(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        raise HTTPException(status_code=400, detail="Date not parseable")


def validate_create_item_form(
    item_type: str,
    title: str,
    description: str,
    category: str,
    date: str,
    location: str,
    contact_method: Optional[str] = None,
) -> ValidatedCreateItem:
    parsed_date = parse_date(date)

    if contact_method is not None:
        contact_method = contact_method.strip() or None

    try:
        return ValidatedCreateItem(
            item_type=item_type,
            title=title.strip(),
            description=description.strip(),
            category=category,
            date=parsed_date,
            location=location.strip(),
            contact_method=contact_method,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=400,
            detail=e.errors(include_url=False, include_context=False),
        )
