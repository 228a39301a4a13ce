"""
Approval API routes.

Approvals are polymorphic: (entity_type, entity_id) points at a vendor, RFx
event, purchase order or budget. Only the assigned approver decides.
"""
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Request, Query
from sqlalchemy.orm import Session
from sqlalchemy import desc

from procurehub.db.session import get_db
from procurehub.db.models import (
    Approval, ApprovalEntityType, ApprovalStatus, NotificationType,
    PurchaseOrder, RfxEvent, User, Vendor, VendorStatus,
)
from procurehub.core.rbac import Role, has_permission, require_buyer
from procurehub.core.logging import get_logger
from procurehub.schemas.approvals import ApprovalCreate, ApprovalDecision, ApprovalResponse
from procurehub.services.audit import record_audit
from procurehub.services.notifications import notify

logger = get_logger(__name__)

router = APIRouter(prefix="/api/approvals", tags=["Approvals"])

# Entity types that refer to a stored row
_ENTITY_MODELS = {
    ApprovalEntityType.VENDOR: Vendor,
    ApprovalEntityType.RFX: RfxEvent,
    ApprovalEntityType.PO: PurchaseOrder,
}


def get_approval_or_404(db: Session, approval_id: int) -> Approval:
    approval = db.query(Approval).filter(Approval.id == approval_id).first()
    if not approval:
        raise HTTPException(status_code=404, detail="Approval not found")
    return approval


@router.get("", response_model=List[ApprovalResponse])
async def list_approvals(
    mine: bool = Query(False, description="Only approvals assigned to me"),
    pending: bool = Query(False, description="Only pending approvals"),
    entity_type: Optional[ApprovalEntityType] = Query(None),
    entity_id: Optional[int] = Query(None),
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    query = db.query(Approval)
    if mine:
        query = query.filter(Approval.approver_id == user_context["user_id"])
    if pending:
        query = query.filter(Approval.status == ApprovalStatus.PENDING.value)
    if entity_type:
        query = query.filter(Approval.entity_type == entity_type.value)
    if entity_id is not None:
        query = query.filter(Approval.entity_id == entity_id)
    return query.order_by(desc(Approval.created_at), desc(Approval.id)).all()


@router.post("", response_model=ApprovalResponse, status_code=status.HTTP_201_CREATED)
async def request_approval(
    request: Request,
    approval_data: ApprovalCreate,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    """Ask a user to approve an entity. The approver is notified."""
    approver = db.query(User).filter(User.id == approval_data.approver_id).first()
    if not approver or not approver.is_active:
        raise HTTPException(status_code=404, detail="Approver not found")
    if not has_permission(Role(approver.role), Role.BUYER_USER):
        raise HTTPException(status_code=400, detail="Vendor accounts cannot approve")

    model = _ENTITY_MODELS.get(approval_data.entity_type)
    if model is not None and not db.query(model).filter(model.id == approval_data.entity_id).first():
        raise HTTPException(status_code=404, detail=f"{approval_data.entity_type.value} not found")

    approval = Approval(
        entity_type=approval_data.entity_type.value,
        entity_id=approval_data.entity_id,
        approver_id=approval_data.approver_id,
        status=ApprovalStatus.PENDING.value,
        comments=approval_data.comments,
    )
    db.add(approval)
    db.flush()

    notify(
        db, approval.approver_id,
        title="Approval requested",
        message=f"Please review {approval.entity_type} #{approval.entity_id}",
        type=NotificationType.WARNING,
        entity_type=approval.entity_type, entity_id=approval.entity_id,
    )
    record_audit(db, request, user_context["user_id"], "request_approval", approval.entity_type,
                 approval.entity_id, {"approval_id": approval.id, "approver_id": approval.approver_id})
    db.commit()
    db.refresh(approval)
    return approval


@router.get("/{approval_id}", response_model=ApprovalResponse)
async def get_approval(
    approval_id: int,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    return get_approval_or_404(db, approval_id)


@router.post("/{approval_id}/decision", response_model=ApprovalResponse)
async def decide_approval(
    approval_id: int,
    request: Request,
    decision: ApprovalDecision,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    """Approve or reject. Approving a vendor approval also approves the vendor."""
    approval = get_approval_or_404(db, approval_id)

    if approval.approver_id != user_context["user_id"]:
        raise HTTPException(status_code=403, detail="Only the assigned approver can decide")
    if approval.status != ApprovalStatus.PENDING.value:
        raise HTTPException(status_code=400, detail=f"Approval already {approval.status}")
    if decision.status == ApprovalStatus.PENDING:
        raise HTTPException(status_code=400, detail="Decision must be approved or rejected")

    approval.status = decision.status.value
    approval.approved_at = datetime.now(timezone.utc)
    if decision.comments is not None:
        approval.comments = decision.comments

    if approval.entity_type == ApprovalEntityType.VENDOR.value:
        vendor = db.query(Vendor).filter(Vendor.id == approval.entity_id).first()
        if vendor:
            vendor.status = (
                VendorStatus.APPROVED.value
                if decision.status == ApprovalStatus.APPROVED
                else VendorStatus.REJECTED.value
            )
            logger.info(f"Vendor {vendor.id} {vendor.status} through approval {approval.id}")

    record_audit(db, request, user_context["user_id"], "decide_approval", approval.entity_type,
                 approval.entity_id, {"approval_id": approval.id, "status": approval.status})
    db.commit()
    db.refresh(approval)
    return approval
