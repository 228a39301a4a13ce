"""
RFx (RFI / RFP / RFQ) API routes - events, vendor invitations and responses.
"""
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Request, Query
from sqlalchemy.orm import Session
from sqlalchemy import desc

from procurehub.db.session import get_db
from procurehub.db.models import (
    RfxEvent, RfxInvitation, RfxResponse, RfxStatus, RfxType, InvitationStatus,
    Vendor, Bom, NotificationType,
)
from procurehub.core.rbac import (
    Role, require_buyer, require_vendor, require_sourcing_manager, ensure_vendor_scope,
)
from procurehub.schemas.rfx import (
    RfxEventCreate, RfxEventUpdate, RfxStatusUpdate, RfxEventResponse,
    InvitationCreate, InvitationStatusUpdate, InvitationResponse,
    RfxResponseCreate, RfxResponseOut,
)
from procurehub.services.audit import record_audit
from procurehub.services.lifecycle import RFX_TRANSITIONS, RFX_OPEN_STATUSES, check_transition
from procurehub.services.notifications import notify
from procurehub.services.numbering import generate_rfx_reference

router = APIRouter(prefix="/api/rfx", tags=["RFx"])


def get_event_or_404(db: Session, rfx_id: int) -> RfxEvent:
    event = db.query(RfxEvent).filter(RfxEvent.id == rfx_id).first()
    if not event:
        raise HTTPException(status_code=404, detail="RFx event not found")
    return event


def event_to_response(event: RfxEvent) -> RfxEventResponse:
    data = RfxEventResponse.model_validate(event).model_dump()
    data["invitation_count"] = len(event.invitations)
    data["response_count"] = len(event.responses)
    return RfxEventResponse(**data)


def check_visible_to_vendor(db: Session, user_context: dict, event: RfxEvent) -> None:
    """Vendor logins only see events they were invited to."""
    if user_context["role"] != Role.VENDOR:
        return
    invited = db.query(RfxInvitation).filter(
        RfxInvitation.rfx_id == event.id,
        RfxInvitation.vendor_id == user_context.get("vendor_id"),
    ).first()
    if not invited:
        raise HTTPException(status_code=404, detail="RFx event not found")


def invite_vendors(db: Session, event: RfxEvent, vendor_ids: List[int]) -> List[RfxInvitation]:
    """Invite vendors not yet on the event. Invited vendors with a login are notified."""
    unique_ids = list(dict.fromkeys(vendor_ids))
    vendors = db.query(Vendor).filter(Vendor.id.in_(unique_ids)).all()
    by_id = {v.id: v for v in vendors}
    missing = [vid for vid in unique_ids if vid not in by_id]
    if missing:
        raise HTTPException(status_code=404, detail=f"Vendor not found: {', '.join(map(str, missing))}")

    existing = {inv.vendor_id for inv in event.invitations}
    created = []
    for vid in unique_ids:
        if vid in existing:
            continue
        invitation = RfxInvitation(vendor_id=vid, status=InvitationStatus.INVITED.value)
        event.invitations.append(invitation)
        created.append(invitation)
        if by_id[vid].user_id:
            notify(
                db, by_id[vid].user_id,
                title=f"Invitation: {event.title}",
                message=f"You have been invited to respond to {event.reference_no}",
                entity_type="rfx", entity_id=event.id,
            )
    return created


# ============= EVENTS =============

@router.get("", response_model=List[RfxEventResponse])
async def list_events(
    rfx_status: Optional[RfxStatus] = Query(None, alias="status", description="Filter by status"),
    rfx_type: Optional[RfxType] = Query(None, alias="type", description="Filter by type"),
    limit: int = Query(50, le=200),
    offset: int = Query(0),
    user_context: dict = Depends(require_vendor),
    db: Session = Depends(get_db)
):
    """List RFx events. Vendors see only the events they were invited to."""
    query = db.query(RfxEvent)
    if user_context["role"] == Role.VENDOR:
        query = query.join(RfxInvitation).filter(RfxInvitation.vendor_id == user_context.get("vendor_id"))
    if rfx_status:
        query = query.filter(RfxEvent.status == rfx_status.value)
    if rfx_type:
        query = query.filter(RfxEvent.type == rfx_type.value)
    events = query.order_by(desc(RfxEvent.created_at), desc(RfxEvent.id)).offset(offset).limit(limit).all()
    return [event_to_response(e) for e in events]


@router.post("", response_model=RfxEventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    request: Request,
    event_data: RfxEventCreate,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    """Create a draft RFx event, optionally inviting vendors right away."""
    if event_data.bom_id and not db.query(Bom).filter(Bom.id == event_data.bom_id).first():
        raise HTTPException(status_code=404, detail="BOM not found")

    event = RfxEvent(
        **event_data.model_dump(exclude={"vendor_ids", "type"}),
        type=event_data.type.value,
        reference_no=generate_rfx_reference(),
        status=RfxStatus.DRAFT.value,
        created_by=user_context["user_id"],
    )
    db.add(event)
    db.flush()

    if event_data.vendor_ids:
        invite_vendors(db, event, event_data.vendor_ids)

    record_audit(db, request, user_context["user_id"], "create_rfx", "rfx", event.id,
                 {"reference_no": event.reference_no, "type": event.type})
    db.commit()
    db.refresh(event)
    return event_to_response(event)


@router.get("/{rfx_id}", response_model=RfxEventResponse)
async def get_event(
    rfx_id: int,
    user_context: dict = Depends(require_vendor),
    db: Session = Depends(get_db)
):
    event = get_event_or_404(db, rfx_id)
    check_visible_to_vendor(db, user_context, event)
    return event_to_response(event)


@router.put("/{rfx_id}", response_model=RfxEventResponse)
async def update_event(
    rfx_id: int,
    request: Request,
    update_data: RfxEventUpdate,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    """Edit an event that is not closed or cancelled."""
    event = get_event_or_404(db, rfx_id)
    if event.status in (RfxStatus.CLOSED.value, RfxStatus.CANCELLED.value):
        raise HTTPException(status_code=400, detail=f"Cannot edit a {event.status} RFx event")

    for key, value in update_data.model_dump(exclude_unset=True).items():
        setattr(event, key, value)

    record_audit(db, request, user_context["user_id"], "update_rfx", "rfx", rfx_id,
                 update_data.model_dump(mode="json", exclude_unset=True))
    db.commit()
    db.refresh(event)
    return event_to_response(event)


@router.post("/{rfx_id}/status", response_model=RfxEventResponse)
async def set_event_status(
    rfx_id: int,
    request: Request,
    status_data: RfxStatusUpdate,
    user_context: dict = Depends(require_sourcing_manager),
    db: Session = Depends(get_db)
):
    """Move an event along draft -> published -> active -> closed, or cancel it."""
    event = get_event_or_404(db, rfx_id)
    target = status_data.status.value
    check_transition(RFX_TRANSITIONS, event.status, target, "RFx event")

    previous = event.status
    event.status = target

    if target == RfxStatus.PUBLISHED.value:
        for invitation in event.invitations:
            vendor = invitation.vendor
            if vendor and vendor.user_id:
                notify(
                    db, vendor.user_id,
                    title=f"RFx published: {event.title}",
                    message=f"{event.reference_no} is open for responses",
                    entity_type="rfx", entity_id=event.id,
                )

    record_audit(db, request, user_context["user_id"], "set_rfx_status", "rfx", rfx_id,
                 {"from": previous, "to": target})
    db.commit()
    db.refresh(event)
    return event_to_response(event)


@router.delete("/{rfx_id}")
async def delete_event(
    rfx_id: int,
    request: Request,
    user_context: dict = Depends(require_sourcing_manager),
    db: Session = Depends(get_db)
):
    """Delete an event with its invitations and responses."""
    event = get_event_or_404(db, rfx_id)
    if event.purchase_orders:
        raise HTTPException(status_code=409, detail="RFx event has purchase orders")

    reference_no = event.reference_no
    db.delete(event)
    record_audit(db, request, user_context["user_id"], "delete_rfx", "rfx", rfx_id,
                 {"reference_no": reference_no})
    db.commit()
    return {"message": "RFx event deleted successfully"}


# ============= INVITATIONS =============

@router.get("/{rfx_id}/invitations", response_model=List[InvitationResponse])
async def list_invitations(
    rfx_id: int,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    return get_event_or_404(db, rfx_id).invitations


@router.post("/{rfx_id}/invitations", response_model=List[InvitationResponse],
             status_code=status.HTTP_201_CREATED)
async def create_invitations(
    rfx_id: int,
    request: Request,
    invitation_data: InvitationCreate,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    """Invite vendors. Vendors already invited are skipped."""
    event = get_event_or_404(db, rfx_id)
    if event.status in (RfxStatus.CLOSED.value, RfxStatus.CANCELLED.value):
        raise HTTPException(status_code=400, detail=f"Cannot invite vendors to a {event.status} RFx event")

    created = invite_vendors(db, event, invitation_data.vendor_ids)
    record_audit(db, request, user_context["user_id"], "invite_vendors", "rfx", rfx_id,
                 {"vendor_ids": [i.vendor_id for i in created]})
    db.commit()
    for invitation in created:
        db.refresh(invitation)
    return created


@router.put("/{rfx_id}/invitations/{vendor_id}", response_model=InvitationResponse)
async def update_invitation(
    rfx_id: int,
    vendor_id: int,
    request: Request,
    update_data: InvitationStatusUpdate,
    user_context: dict = Depends(require_vendor),
    db: Session = Depends(get_db)
):
    """Mark an invitation viewed or declined (or responded)."""
    ensure_vendor_scope(user_context, vendor_id)
    invitation = db.query(RfxInvitation).filter(
        RfxInvitation.rfx_id == rfx_id,
        RfxInvitation.vendor_id == vendor_id,
    ).first()
    if not invitation:
        raise HTTPException(status_code=404, detail="Invitation not found")

    invitation.status = update_data.status.value
    if update_data.status in (InvitationStatus.RESPONDED, InvitationStatus.DECLINED):
        invitation.responded_at = datetime.now(timezone.utc)

    record_audit(db, request, user_context["user_id"], "update_invitation", "rfx", rfx_id,
                 {"vendor_id": vendor_id, "status": invitation.status})
    db.commit()
    db.refresh(invitation)
    return invitation


# ============= RESPONSES =============

@router.get("/{rfx_id}/responses", response_model=List[RfxResponseOut])
async def list_responses(
    rfx_id: int,
    user_context: dict = Depends(require_vendor),
    db: Session = Depends(get_db)
):
    """Buyers see every response; vendors only their own."""
    event = get_event_or_404(db, rfx_id)
    query = db.query(RfxResponse).filter(RfxResponse.rfx_id == event.id)
    if user_context["role"] == Role.VENDOR:
        query = query.filter(RfxResponse.vendor_id == user_context.get("vendor_id"))
    return query.order_by(RfxResponse.submitted_at, RfxResponse.id).all()


@router.post("/{rfx_id}/responses", response_model=RfxResponseOut, status_code=status.HTTP_201_CREATED)
async def submit_response(
    rfx_id: int,
    request: Request,
    response_data: RfxResponseCreate,
    user_context: dict = Depends(require_vendor),
    db: Session = Depends(get_db)
):
    """Submit a response from an invited vendor while the event is open."""
    ensure_vendor_scope(user_context, response_data.vendor_id)
    event = get_event_or_404(db, rfx_id)

    if event.status not in RFX_OPEN_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"RFx event is {event.status}; responses are not accepted",
        )

    invitation = db.query(RfxInvitation).filter(
        RfxInvitation.rfx_id == rfx_id,
        RfxInvitation.vendor_id == response_data.vendor_id,
    ).first()
    if not invitation:
        raise HTTPException(status_code=403, detail="Vendor was not invited to this RFx event")

    response = RfxResponse(rfx_id=rfx_id, **response_data.model_dump())
    db.add(response)

    invitation.status = InvitationStatus.RESPONDED.value
    invitation.responded_at = datetime.now(timezone.utc)

    if event.created_by:
        notify(
            db, event.created_by,
            title=f"New response on {event.reference_no}",
            message=f"Vendor {response_data.vendor_id} submitted a response",
            type=NotificationType.SUCCESS,
            entity_type="rfx", entity_id=event.id,
        )

    db.flush()
    record_audit(db, request, user_context["user_id"], "submit_rfx_response", "rfx", rfx_id,
                 {"response_id": response.id, "vendor_id": response_data.vendor_id})
    db.commit()
    db.refresh(response)
    return response
