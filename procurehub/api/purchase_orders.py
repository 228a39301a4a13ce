"""
Purchase order API routes.

Lifecycle: draft -> issued -> acknowledged -> shipped -> delivered ->
invoiced -> paid. An order can be cancelled until it ships. Only drafts can
be edited or deleted.
"""
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Request, Query
from sqlalchemy.orm import Session
from sqlalchemy import desc

from procurehub.db.session import get_db
from procurehub.db.models import (
    PurchaseOrder, PoLineItem, POStatus, LineItemStatus, Vendor, Product,
    RfxEvent, Auction, NotificationType,
)
from procurehub.core.rbac import (
    Role, require_buyer, require_vendor, ensure_vendor_scope,
)
from procurehub.schemas.purchase_orders import (
    PurchaseOrderCreate, PurchaseOrderUpdate, POStatusUpdate,
    PurchaseOrderResponse, PurchaseOrderDetailResponse, PoLineItemResponse,
)
from procurehub.services.audit import record_audit
from procurehub.services.lifecycle import PO_TRANSITIONS, check_transition
from procurehub.services.notifications import notify
from procurehub.services.numbering import generate_po_number

router = APIRouter(prefix="/api/purchase-orders", tags=["Purchase Orders"])

_CENT = Decimal("0.01")

# Steps a vendor login may take on its own orders
VENDOR_STATUSES = {POStatus.ACKNOWLEDGED.value, POStatus.SHIPPED.value, POStatus.DELIVERED.value,
                   POStatus.INVOICED.value}


def get_po_or_404(db: Session, po_id: int) -> PurchaseOrder:
    po = db.query(PurchaseOrder).filter(PurchaseOrder.id == po_id).first()
    if not po:
        raise HTTPException(status_code=404, detail="Purchase order not found")
    return po


def get_visible_po(db: Session, user_context: dict, po_id: int) -> PurchaseOrder:
    po = get_po_or_404(db, po_id)
    if user_context["role"] == Role.VENDOR and po.vendor_id != user_context.get("vendor_id"):
        raise HTTPException(status_code=404, detail="Purchase order not found")
    return po


def line_total(quantity: Decimal, unit_price: Decimal) -> Decimal:
    return (quantity * unit_price).quantize(_CENT, rounding=ROUND_HALF_UP)


def require_draft(po: PurchaseOrder) -> None:
    if po.status != POStatus.DRAFT.value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Purchase order is {po.status}; only drafts can be changed",
        )


@router.get("", response_model=List[PurchaseOrderResponse])
async def list_purchase_orders(
    po_status: Optional[POStatus] = Query(None, alias="status"),
    vendor_id: Optional[int] = Query(None),
    limit: int = Query(50, le=200),
    offset: int = Query(0),
    user_context: dict = Depends(require_vendor),
    db: Session = Depends(get_db)
):
    """List purchase orders. Vendor logins see only their own orders."""
    query = db.query(PurchaseOrder)
    if user_context["role"] == Role.VENDOR:
        query = query.filter(PurchaseOrder.vendor_id == user_context.get("vendor_id"))
    elif vendor_id:
        query = query.filter(PurchaseOrder.vendor_id == vendor_id)
    if po_status:
        query = query.filter(PurchaseOrder.status == po_status.value)
    return query.order_by(desc(PurchaseOrder.created_at), desc(PurchaseOrder.id)).offset(offset).limit(limit).all()


@router.post("", response_model=PurchaseOrderDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase_order(
    request: Request,
    po_data: PurchaseOrderCreate,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    """Create a draft purchase order with its line items in one transaction."""
    if not db.query(Vendor).filter(Vendor.id == po_data.vendor_id).first():
        raise HTTPException(status_code=404, detail="Vendor not found")
    if po_data.rfx_id and not db.query(RfxEvent).filter(RfxEvent.id == po_data.rfx_id).first():
        raise HTTPException(status_code=404, detail="RFx event not found")
    if po_data.auction_id and not db.query(Auction).filter(Auction.id == po_data.auction_id).first():
        raise HTTPException(status_code=404, detail="Auction not found")

    product_ids = {line.product_id for line in po_data.line_items}
    if product_ids:
        found = {pid for (pid,) in db.query(Product.id).filter(Product.id.in_(product_ids)).all()}
        missing = sorted(product_ids - found)
        if missing:
            raise HTTPException(status_code=404, detail=f"Product not found: {', '.join(map(str, missing))}")

    line_items = [
        PoLineItem(
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
            total_price=line_total(line.quantity, line.unit_price),
            delivery_date=line.delivery_date,
            status=LineItemStatus.PENDING.value,
        )
        for line in po_data.line_items
    ]
    if line_items:
        total_amount = sum((li.total_price for li in line_items), Decimal("0.00"))
    else:
        total_amount = po_data.total_amount

    po = PurchaseOrder(
        **po_data.model_dump(exclude={"line_items", "total_amount"}),
        po_number=generate_po_number(),
        total_amount=total_amount,
        status=POStatus.DRAFT.value,
        created_by=user_context["user_id"],
    )
    po.line_items = line_items
    db.add(po)
    db.flush()

    record_audit(db, request, user_context["user_id"], "create_po", "purchase_order", po.id,
                 {"po_number": po.po_number, "total_amount": str(total_amount)})
    db.commit()
    db.refresh(po)
    return po


@router.get("/{po_id}", response_model=PurchaseOrderDetailResponse)
async def get_purchase_order(
    po_id: int,
    user_context: dict = Depends(require_vendor),
    db: Session = Depends(get_db)
):
    return get_visible_po(db, user_context, po_id)


@router.get("/{po_id}/line-items", response_model=List[PoLineItemResponse])
async def list_line_items(
    po_id: int,
    user_context: dict = Depends(require_vendor),
    db: Session = Depends(get_db)
):
    return get_visible_po(db, user_context, po_id).line_items


@router.put("/{po_id}", response_model=PurchaseOrderDetailResponse)
async def update_purchase_order(
    po_id: int,
    request: Request,
    update_data: PurchaseOrderUpdate,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    po = get_po_or_404(db, po_id)
    require_draft(po)

    changes = update_data.model_dump(exclude_unset=True)
    if "total_amount" in changes and po.line_items:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="total_amount is derived from the line items",
        )
    for key, value in changes.items():
        setattr(po, key, value)

    record_audit(db, request, user_context["user_id"], "update_po", "purchase_order", po_id,
                 update_data.model_dump(mode="json", exclude_unset=True))
    db.commit()
    db.refresh(po)
    return po


@router.post("/{po_id}/status", response_model=PurchaseOrderDetailResponse)
async def set_po_status(
    po_id: int,
    request: Request,
    status_data: POStatusUpdate,
    user_context: dict = Depends(require_vendor),
    db: Session = Depends(get_db)
):
    """Advance the order one step through its lifecycle, or cancel it."""
    po = get_po_or_404(db, po_id)
    target = status_data.status.value

    if user_context["role"] == Role.VENDOR:
        ensure_vendor_scope(user_context, po.vendor_id)
        if target not in VENDOR_STATUSES:
            raise HTTPException(status_code=403, detail=f"Vendors cannot set status '{target}'")

    check_transition(PO_TRANSITIONS, po.status, target, "purchase order")

    previous = po.status
    po.status = target
    now = datetime.now(timezone.utc)

    if target == POStatus.ACKNOWLEDGED.value:
        po.acknowledged_at = now
    elif target in (POStatus.SHIPPED.value, POStatus.DELIVERED.value):
        for line in po.line_items:
            line.status = target

    if target == POStatus.ISSUED.value and po.vendor and po.vendor.user_id:
        notify(
            db, po.vendor.user_id,
            title=f"Purchase order {po.po_number} issued",
            message=f"Total amount {po.total_amount}",
            entity_type="purchase_order", entity_id=po.id,
        )
    elif po.created_by and user_context["user_id"] != po.created_by:
        notify(
            db, po.created_by,
            title=f"Purchase order {po.po_number} is {target}",
            type=NotificationType.WARNING if target == POStatus.CANCELLED.value else NotificationType.INFO,
            entity_type="purchase_order", entity_id=po.id,
        )

    record_audit(db, request, user_context["user_id"], "set_po_status", "purchase_order", po_id,
                 {"from": previous, "to": target})
    db.commit()
    db.refresh(po)
    return po


@router.delete("/{po_id}")
async def delete_purchase_order(
    po_id: int,
    request: Request,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    """Delete a draft order and its line items."""
    po = get_po_or_404(db, po_id)
    require_draft(po)

    po_number = po.po_number
    db.delete(po)
    record_audit(db, request, user_context["user_id"], "delete_po", "purchase_order", po_id,
                 {"po_number": po_number})
    db.commit()
    return {"message": "Purchase order deleted successfully"}
