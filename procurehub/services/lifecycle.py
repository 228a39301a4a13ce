"""
Status lifecycles for RFx events and purchase orders.

Each map lists the statuses reachable from a given status in one step.
Terminal statuses map to an empty set.
"""
from fastapi import HTTPException, status

from procurehub.db.models import AuctionStatus, POStatus, RfxStatus


RFX_TRANSITIONS = {
    RfxStatus.DRAFT.value: {RfxStatus.PUBLISHED.value, RfxStatus.CANCELLED.value},
    RfxStatus.PUBLISHED.value: {RfxStatus.ACTIVE.value, RfxStatus.CLOSED.value, RfxStatus.CANCELLED.value},
    RfxStatus.ACTIVE.value: {RfxStatus.CLOSED.value, RfxStatus.CANCELLED.value},
    RfxStatus.CLOSED.value: set(),
    RfxStatus.CANCELLED.value: set(),
}

PO_TRANSITIONS = {
    POStatus.DRAFT.value: {POStatus.ISSUED.value, POStatus.CANCELLED.value},
    POStatus.ISSUED.value: {POStatus.ACKNOWLEDGED.value, POStatus.CANCELLED.value},
    POStatus.ACKNOWLEDGED.value: {POStatus.SHIPPED.value, POStatus.CANCELLED.value},
    POStatus.SHIPPED.value: {POStatus.DELIVERED.value},
    POStatus.DELIVERED.value: {POStatus.INVOICED.value},
    POStatus.INVOICED.value: {POStatus.PAID.value},
    POStatus.PAID.value: set(),
    POStatus.CANCELLED.value: set(),
}

AUCTION_TRANSITIONS = {
    AuctionStatus.SCHEDULED.value: {AuctionStatus.LIVE.value, AuctionStatus.CANCELLED.value},
    AuctionStatus.LIVE.value: {AuctionStatus.COMPLETED.value, AuctionStatus.CANCELLED.value},
    AuctionStatus.COMPLETED.value: set(),
    AuctionStatus.CANCELLED.value: set(),
}

# RFx events that still accept vendor responses
RFX_OPEN_STATUSES = frozenset({RfxStatus.PUBLISHED.value, RfxStatus.ACTIVE.value})


def can_transition(transitions: dict, current: str, target: str) -> bool:
    return target in transitions.get(current, set())


def check_transition(transitions: dict, current: str, target: str, entity: str) -> None:
    """Raise 400 unless ``current -> target`` is an allowed step."""
    if not can_transition(transitions, current, target):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot move {entity} from '{current}' to '{target}'",
        )
