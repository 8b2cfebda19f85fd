from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

# --- Enums / Literals ---
SubscriberStatus = Literal["pending_confirmation", "confirmed"]

PENDING_CONFIRMATION: SubscriberStatus = "pending_confirmation"
CONFIRMED: SubscriberStatus = "confirmed"

# Status only moves forward; leaving "confirmed" means deleting the row.
VALID_TRANSITIONS: dict[str, set[str]] = {
    PENDING_CONFIRMATION: {CONFIRMED},
    CONFIRMED: set(),
}


def can_transition(current: SubscriberStatus, new: SubscriberStatus) -> bool:
    """Re-applying the current status is allowed (idempotent confirm)."""
    if current == new:
        return True
    return new in VALID_TRANSITIONS.get(current, set())


# --- Subscribers ---


class Subscriber(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    email: str
    name: str
    subscribed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    status: SubscriberStatus = PENDING_CONFIRMATION
