"""
Dashboard statistics and the navigation table for the web client.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import func

from procurehub.db.session import get_db
from procurehub.db.models import (
    Vendor, Product, Bom, RfxEvent, Auction, PurchaseOrder, Approval, ApprovalStatus,
    Notification,
)
from procurehub.core.rbac import get_optional_user_context, require_buyer

router = APIRouter(prefix="/api", tags=["Dashboard"])

LANDING_ROUTES = [
    {"path": "/", "name": "Landing"},
]

APP_ROUTES = [
    {"path": "/", "name": "Dashboard"},
    {"path": "/vendors", "name": "Vendors"},
    {"path": "/vendor-discovery", "name": "Vendor Discovery"},
    {"path": "/products", "name": "Products"},
    {"path": "/boms", "name": "BOMs"},
    {"path": "/rfx", "name": "RFx"},
    {"path": "/auctions", "name": "Auctions"},
    {"path": "/purchase-orders", "name": "Purchase Orders"},
    {"path": "/analytics", "name": "Analytics"},
]


def count_by_status(db: Session, model) -> dict:
    rows = db.query(model.status, func.count(model.id)).group_by(model.status).all()
    return {status_value: count for status_value, count in rows if status_value is not None}


@router.get("/navigation")
async def navigation(user_context: Optional[dict] = Depends(get_optional_user_context)):
    """Routes the client may show. Anonymous visitors only get the landing page."""
    if user_context is None:
        return {"authenticated": False, "routes": LANDING_ROUTES}
    return {
        "authenticated": True,
        "role": user_context["role"].value,
        "routes": APP_ROUTES,
    }


@router.get("/dashboard/stats")
async def dashboard_stats(
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    """Entity counts, split by status where the entity has one."""
    po_value = db.query(func.coalesce(func.sum(PurchaseOrder.total_amount), 0)).scalar()
    return {
        "vendors": {"total": db.query(Vendor).count(), "by_status": count_by_status(db, Vendor)},
        "products": {
            "total": db.query(Product).count(),
            "active": db.query(Product).filter(Product.is_active == True).count(),  # noqa: E712
        },
        "boms": {"total": db.query(Bom).count()},
        "rfx": {"total": db.query(RfxEvent).count(), "by_status": count_by_status(db, RfxEvent)},
        "auctions": {"total": db.query(Auction).count(), "by_status": count_by_status(db, Auction)},
        "purchase_orders": {
            "total": db.query(PurchaseOrder).count(),
            "by_status": count_by_status(db, PurchaseOrder),
            "total_value": str(po_value),
        },
        "pending_approvals": db.query(Approval).filter(
            Approval.approver_id == user_context["user_id"],
            Approval.status == ApprovalStatus.PENDING.value,
        ).count(),
        "unread_notifications": db.query(Notification).filter(
            Notification.user_id == user_context["user_id"],
            Notification.is_read == False,  # noqa: E712
        ).count(),
    }
