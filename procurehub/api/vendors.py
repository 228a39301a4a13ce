"""
Vendors API routes.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Request, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy import or_

from procurehub.db.session import get_db
from procurehub.db.models import Vendor, VendorStatus
from procurehub.core.rbac import (
    Role, require_buyer, require_vendor, require_sourcing_manager, ensure_vendor_scope,
)
from procurehub.core.logging import get_logger
from procurehub.schemas.vendors import VendorCreate, VendorUpdate, VendorStatusUpdate, VendorResponse
from procurehub.services.audit import record_audit

logger = get_logger(__name__)

router = APIRouter(prefix="/api/vendors", tags=["Vendors"])


def get_vendor_or_404(db: Session, vendor_id: int) -> Vendor:
    vendor = db.query(Vendor).filter(Vendor.id == vendor_id).first()
    if not vendor:
        raise HTTPException(status_code=404, detail="Vendor not found")
    return vendor


@router.get("", response_model=List[VendorResponse])
async def list_vendors(
    search: Optional[str] = Query(None, description="Search by company, contact or email"),
    vendor_status: Optional[VendorStatus] = Query(None, alias="status", description="Filter by status"),
    category: Optional[str] = Query(None, description="Filter by category"),
    limit: int = Query(100, le=500),
    offset: int = Query(0),
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    """List vendors (vendor discovery)."""
    query = db.query(Vendor)

    if search:
        query = query.filter(
            or_(
                Vendor.company_name.ilike(f"%{search}%"),
                Vendor.contact_person.ilike(f"%{search}%"),
                Vendor.email.ilike(f"%{search}%"),
            )
        )

    if vendor_status:
        query = query.filter(Vendor.status == vendor_status.value)

    vendors = query.order_by(Vendor.company_name).offset(offset).limit(limit).all()

    # categories is a JSON array; matched here rather than in SQL
    if category:
        needle = category.lower()
        vendors = [v for v in vendors if any(c.lower() == needle for c in (v.categories or []))]

    return vendors


@router.post("", response_model=VendorResponse, status_code=status.HTTP_201_CREATED)
async def create_vendor(
    request: Request,
    vendor_data: VendorCreate,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    """Onboard a new vendor. New vendors start as pending."""
    vendor = Vendor(
        **vendor_data.model_dump(),
        status=VendorStatus.PENDING.value,
        created_by=user_context["user_id"],
    )
    db.add(vendor)
    db.flush()

    record_audit(db, request, user_context["user_id"], "create_vendor", "vendor", vendor.id,
                 {"company_name": vendor.company_name})
    db.commit()
    db.refresh(vendor)
    return vendor


@router.get("/{vendor_id}", response_model=VendorResponse)
async def get_vendor(
    vendor_id: int,
    user_context: dict = Depends(require_vendor),
    db: Session = Depends(get_db)
):
    """Get a vendor. Vendor logins can only read their own profile."""
    ensure_vendor_scope(user_context, vendor_id)
    return get_vendor_or_404(db, vendor_id)


@router.put("/{vendor_id}", response_model=VendorResponse)
async def update_vendor(
    vendor_id: int,
    request: Request,
    update_data: VendorUpdate,
    user_context: dict = Depends(require_vendor),
    db: Session = Depends(get_db)
):
    """Update vendor master data."""
    ensure_vendor_scope(user_context, vendor_id)
    vendor = get_vendor_or_404(db, vendor_id)

    update_dict = update_data.model_dump(exclude_unset=True)
    if user_context["role"] == Role.VENDOR:
        # Vendors maintain their profile, not their rating or login link
        update_dict.pop("performance_score", None)
        update_dict.pop("user_id", None)

    for key, value in update_dict.items():
        setattr(vendor, key, value)

    record_audit(db, request, user_context["user_id"], "update_vendor", "vendor", vendor_id,
                 update_data.model_dump(mode="json", exclude_unset=True))
    db.commit()
    db.refresh(vendor)
    return vendor


@router.post("/{vendor_id}/status", response_model=VendorResponse)
async def set_vendor_status(
    vendor_id: int,
    request: Request,
    status_data: VendorStatusUpdate,
    user_context: dict = Depends(require_sourcing_manager),
    db: Session = Depends(get_db)
):
    """Approve, reject or suspend a vendor."""
    vendor = get_vendor_or_404(db, vendor_id)
    previous = vendor.status
    vendor.status = status_data.status.value

    record_audit(db, request, user_context["user_id"], "set_vendor_status", "vendor", vendor_id,
                 {"from": previous, "to": vendor.status})
    db.commit()
    db.refresh(vendor)
    return vendor


@router.delete("/{vendor_id}")
async def delete_vendor(
    vendor_id: int,
    request: Request,
    user_context: dict = Depends(require_sourcing_manager),
    db: Session = Depends(get_db)
):
    """Delete a vendor that has no RFx, auction or PO history."""
    vendor = get_vendor_or_404(db, vendor_id)

    company_name = vendor.company_name
    db.delete(vendor)
    record_audit(db, request, user_context["user_id"], "delete_vendor", "vendor", vendor_id,
                 {"company_name": company_name})
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"Vendor {vendor_id} still referenced, delete refused")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Vendor is referenced by RFx events, auctions or purchase orders",
        )

    return {"message": "Vendor deleted successfully"}
