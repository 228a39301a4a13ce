"""
Reverse auction API routes.

Bids are stored and listed as submitted. Ranking, validation against the bid
rules and live updates are handled outside this service.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Request, Query
from sqlalchemy.orm import Session
from sqlalchemy import desc

from procurehub.db.session import get_db
from procurehub.db.models import Auction, AuctionParticipant, AuctionStatus, Bid, Vendor
from procurehub.core.rbac import (
    Role, as_utc, require_buyer, require_vendor, require_sourcing_manager, ensure_vendor_scope,
)
from procurehub.schemas.auctions import (
    AuctionCreate, AuctionUpdate, AuctionResponse,
    ParticipantCreate, ParticipantResponse, BidCreate, BidResponse,
)
from procurehub.services.audit import record_audit
from procurehub.services.lifecycle import AUCTION_TRANSITIONS, check_transition

router = APIRouter(prefix="/api/auctions", tags=["Auctions"])


def get_auction_or_404(db: Session, auction_id: int) -> Auction:
    auction = db.query(Auction).filter(Auction.id == auction_id).first()
    if not auction:
        raise HTTPException(status_code=404, detail="Auction not found")
    return auction


def auction_to_response(auction: Auction) -> AuctionResponse:
    data = AuctionResponse.model_validate(auction).model_dump()
    data["participant_count"] = len(auction.participants)
    data["bid_count"] = len(auction.bids)
    return AuctionResponse(**data)


def register_vendor(db: Session, auction: Auction, vendor_id: int) -> AuctionParticipant:
    if not db.query(Vendor).filter(Vendor.id == vendor_id).first():
        raise HTTPException(status_code=404, detail="Vendor not found")
    if any(p.vendor_id == vendor_id for p in auction.participants):
        raise HTTPException(status_code=400, detail="Vendor is already registered for this auction")
    participant = AuctionParticipant(vendor_id=vendor_id)
    auction.participants.append(participant)
    return participant


# ============= AUCTIONS =============

@router.get("", response_model=List[AuctionResponse])
async def list_auctions(
    auction_status: Optional[AuctionStatus] = Query(None, alias="status"),
    limit: int = Query(50, le=200),
    offset: int = Query(0),
    user_context: dict = Depends(require_vendor),
    db: Session = Depends(get_db)
):
    """List auctions. Vendors see the auctions they are registered for."""
    query = db.query(Auction)
    if user_context["role"] == Role.VENDOR:
        query = query.join(AuctionParticipant).filter(
            AuctionParticipant.vendor_id == user_context.get("vendor_id")
        )
    if auction_status:
        query = query.filter(Auction.status == auction_status.value)
    auctions = query.order_by(desc(Auction.start_time)).offset(offset).limit(limit).all()
    return [auction_to_response(a) for a in auctions]


@router.post("", response_model=AuctionResponse, status_code=status.HTTP_201_CREATED)
async def create_auction(
    request: Request,
    auction_data: AuctionCreate,
    user_context: dict = Depends(require_sourcing_manager),
    db: Session = Depends(get_db)
):
    auction = Auction(
        **auction_data.model_dump(exclude={"vendor_ids"}),
        status=AuctionStatus.SCHEDULED.value,
        created_by=user_context["user_id"],
    )
    db.add(auction)
    db.flush()

    for vendor_id in dict.fromkeys(auction_data.vendor_ids or []):
        register_vendor(db, auction, vendor_id)

    record_audit(db, request, user_context["user_id"], "create_auction", "auction", auction.id,
                 {"name": auction.name})
    db.commit()
    db.refresh(auction)
    return auction_to_response(auction)


@router.get("/{auction_id}", response_model=AuctionResponse)
async def get_auction(
    auction_id: int,
    user_context: dict = Depends(require_vendor),
    db: Session = Depends(get_db)
):
    auction = get_auction_or_404(db, auction_id)
    if user_context["role"] == Role.VENDOR and not any(
        p.vendor_id == user_context.get("vendor_id") for p in auction.participants
    ):
        raise HTTPException(status_code=404, detail="Auction not found")
    return auction_to_response(auction)


@router.put("/{auction_id}", response_model=AuctionResponse)
async def update_auction(
    auction_id: int,
    request: Request,
    update_data: AuctionUpdate,
    user_context: dict = Depends(require_sourcing_manager),
    db: Session = Depends(get_db)
):
    """Update auction details or move its status (scheduled -> live -> completed, or cancelled)."""
    auction = get_auction_or_404(db, auction_id)
    changes = update_data.model_dump(exclude_unset=True)

    if "status" in changes and changes["status"] is not None:
        target = update_data.status.value
        if target != auction.status:
            check_transition(AUCTION_TRANSITIONS, auction.status, target, "auction")
        changes["status"] = target

    for key, value in changes.items():
        setattr(auction, key, value)

    if as_utc(auction.end_time) <= as_utc(auction.start_time):
        db.rollback()
        raise HTTPException(status_code=400, detail="end_time must be after start_time")

    record_audit(db, request, user_context["user_id"], "update_auction", "auction", auction_id,
                 update_data.model_dump(mode="json", exclude_unset=True))
    db.commit()
    db.refresh(auction)
    return auction_to_response(auction)


@router.delete("/{auction_id}")
async def delete_auction(
    auction_id: int,
    request: Request,
    user_context: dict = Depends(require_sourcing_manager),
    db: Session = Depends(get_db)
):
    """Delete an auction with its participants and bids."""
    auction = get_auction_or_404(db, auction_id)
    if auction.purchase_orders:
        raise HTTPException(status_code=409, detail="Auction has purchase orders")

    name = auction.name
    db.delete(auction)
    record_audit(db, request, user_context["user_id"], "delete_auction", "auction", auction_id, {"name": name})
    db.commit()
    return {"message": "Auction deleted successfully"}


# ============= PARTICIPANTS =============

@router.get("/{auction_id}/participants", response_model=List[ParticipantResponse])
async def list_participants(
    auction_id: int,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    return get_auction_or_404(db, auction_id).participants


@router.post("/{auction_id}/participants", response_model=ParticipantResponse,
             status_code=status.HTTP_201_CREATED)
async def add_participant(
    auction_id: int,
    request: Request,
    participant_data: ParticipantCreate,
    user_context: dict = Depends(require_vendor),
    db: Session = Depends(get_db)
):
    """Register a vendor for an auction that has not finished."""
    ensure_vendor_scope(user_context, participant_data.vendor_id)
    auction = get_auction_or_404(db, auction_id)
    if auction.status in (AuctionStatus.COMPLETED.value, AuctionStatus.CANCELLED.value):
        raise HTTPException(status_code=400, detail=f"Auction is {auction.status}")

    participant = register_vendor(db, auction, participant_data.vendor_id)
    record_audit(db, request, user_context["user_id"], "register_participant", "auction", auction_id,
                 {"vendor_id": participant_data.vendor_id})
    db.commit()
    db.refresh(participant)
    return participant


# ============= BIDS =============

@router.get("/{auction_id}/bids", response_model=List[BidResponse])
async def list_bids(
    auction_id: int,
    user_context: dict = Depends(require_vendor),
    db: Session = Depends(get_db)
):
    """Bids in submission order. Vendors only see their own."""
    auction = get_auction_or_404(db, auction_id)
    bids = auction.bids
    if user_context["role"] == Role.VENDOR:
        bids = [b for b in bids if b.vendor_id == user_context.get("vendor_id")]
    return bids


@router.post("/{auction_id}/bids", response_model=BidResponse, status_code=status.HTTP_201_CREATED)
async def place_bid(
    auction_id: int,
    request: Request,
    bid_data: BidCreate,
    user_context: dict = Depends(require_vendor),
    db: Session = Depends(get_db)
):
    """Record a bid from a registered participant of a live auction."""
    ensure_vendor_scope(user_context, bid_data.vendor_id)
    auction = get_auction_or_404(db, auction_id)
    if auction.status != AuctionStatus.LIVE.value:
        raise HTTPException(status_code=400, detail=f"Auction is {auction.status}; bids are not accepted")
    if not any(p.vendor_id == bid_data.vendor_id for p in auction.participants):
        raise HTTPException(status_code=403, detail="Vendor is not registered for this auction")

    bid = Bid(auction_id=auction_id, vendor_id=bid_data.vendor_id, amount=bid_data.amount)
    db.add(bid)
    auction.current_bid = bid_data.amount
    db.flush()

    record_audit(db, request, user_context["user_id"], "place_bid", "auction", auction_id,
                 {"bid_id": bid.id, "vendor_id": bid_data.vendor_id, "amount": str(bid_data.amount)})
    db.commit()
    db.refresh(bid)
    return bid
