import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel
from sqlalchemy import update
from sqlmodel import Session, select

from app.models.item import Claim, Item
from app.models.user import User
from app.services.notifier import notify_role, notify_user
from app.utils.auth_helper import Actor
from app.utils.errors import Conflict, Forbidden, InvalidInput, InvalidState, NotFound

logger = logging.getLogger(__name__)

REVIEW_DECISIONS = ("resolved", "rejected")


class ClaimDetails(BaseModel):
    description: str = ""
    contact_info: str = ""
    proof_details: str = ""


class ClaimSummary(BaseModel):
    id: str
    item_id: str
    item_title: str
    item_type: str
    status: str
    claimer_id: Optional[str]
    claimer_name: str
    claimer_email: str
    date: str
    description: str
    contact_info: str
    proof_details: str


def _get_item(session: Session, item_id: uuid.UUID) -> Item:
    item = session.get(Item, item_id)
    if not item:
        raise NotFound("Item not found")
    return item


def _transition(session: Session, item_id: uuid.UUID, expected: str, **values) -> Item:
    """
    Compare-and-set on the item status.

    The update only applies while the item is still in `expected`, so two
    requests racing on the same item cannot both win.
    """
    result = session.execute(
        update(Item)
        .where(Item.id == item_id)
        .where(Item.status == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        session.rollback()
        raise Conflict("Item was updated by another request, please retry")

    session.commit()

    item = session.get(Item, item_id)
    session.refresh(item)
    return item


def submit_claim(session: Session, item_id: uuid.UUID, actor: Actor, details: ClaimDetails) -> Item:
    item = _get_item(session, item_id)

    # Prevent self-claim, whatever the status
    if item.user_id is not None and item.user_id == actor.id:
        raise Forbidden("You cannot claim your own item")

    if item.status != "pending":
        raise InvalidState(f"Item cannot be claimed, current status is '{item.status}'")

    claim = Claim(
        description=details.description,
        contact_info=details.contact_info,
        proof_details=details.proof_details,
        submitted_at=datetime.now(timezone.utc),
        claimant_name=actor.name,
        claimant_email=actor.email,
    )

    item = _transition(
        session,
        item.id,
        expected="pending",
        status="claimed",
        claimant_id=actor.id,
        claim=claim.model_dump(mode="json"),
    )

    logger.info("Item %s claimed by user %s", item.id, actor.public_id)

    # Notify reporter
    if item.user_id is not None:
        notify_user(
            session,
            item.user_id,
            f"Someone has claimed your {item.type} item '{item.title}'. An administrator will review the claim.",
            type="claim_created",
            item_id=item.id,
        )

    # Notify admins
    notify_role(
        session,
        "admin",
        f"New claim for the {item.type} item '{item.title}' requires review.",
        type="claim_review_required",
        item_id=item.id,
    )

    # notifications commit the session, reload before handing the item back
    session.refresh(item)

    return item


def _reporter_message(item: Item, decision: str) -> str:
    if decision == "rejected":
        return f"The claim on your {item.type} item '{item.title}' has been rejected by an administrator."

    if item.type == "found":
        return f"Your found item '{item.title}' has been returned to its owner."

    return f"Your lost item '{item.title}' has been recovered from its finder."


def _claimant_message(item: Item, decision: str) -> str:
    if decision == "rejected":
        return f"Your claim for the item '{item.title}' has been rejected."

    return f"Your claim for the item '{item.title}' has been approved."


def review_claim(session: Session, item_id: uuid.UUID, actor: Actor, decision: str) -> Item:
    if not actor.is_admin:
        raise Forbidden("Admin access required")

    if decision not in REVIEW_DECISIONS:
        raise InvalidInput("Status must be either 'resolved' or 'rejected'")

    item = _get_item(session, item_id)

    if item.status != "claimed":
        raise InvalidState(f"Item has no claim awaiting review, current status is '{item.status}'")

    item = _transition(session, item.id, expected="claimed", status=decision)

    logger.info("Claim on item %s %s by admin %s", item.id, decision, actor.public_id)

    notification_type = "claim_approved" if decision == "resolved" else "claim_rejected"

    # Each party is notified independently
    if item.user_id is not None:
        notify_user(
            session,
            item.user_id,
            _reporter_message(item, decision),
            type=notification_type,
            item_id=item.id,
        )

    if item.claimant_id is not None:
        notify_user(
            session,
            item.claimant_id,
            _claimant_message(item, decision),
            type=notification_type,
            item_id=item.id,
        )

    session.refresh(item)

    return item


def list_pending_claims(session: Session, actor: Actor) -> List[ClaimSummary]:
    if not actor.is_admin:
        raise Forbidden("Admin access required")

    results = session.exec(
        select(Item, User)
        .join(User, Item.claimant_id == User.id, isouter=True)
        .where(Item.status == "claimed")
    ).all()

    rows = []

    for item, claimer in results:
        claim = item.get_claim() or Claim()
        submitted_at = claim.submitted_at

        summary = ClaimSummary(
            id=str(item.id),
            item_id=str(item.id),
            item_title=item.title,
            item_type=item.type,
            status=item.status,
            claimer_id=claimer.public_id if claimer else None,
            claimer_name=claimer.name if claimer else claim.claimant_name or "Anonymous",
            claimer_email=claimer.email if claimer else claim.claimant_email or "N/A",
            date=submitted_at.strftime("%Y-%m-%d") if submitted_at else "Unknown",
            description=claim.description,
            contact_info=claim.contact_info,
            proof_details=claim.proof_details,
        )
        rows.append((submitted_at, summary))

    # Newest claim first, undated claims last
    rows.sort(
        key=lambda row: row[0].timestamp() if row[0] else float("-inf"),
        reverse=True,
    )

    return [summary for _, summary in rows]
