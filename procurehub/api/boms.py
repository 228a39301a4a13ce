"""
Bill of materials API routes.

Items can be added one request at a time (the builder's two-phase commit) or
together with the header through ``POST /api/boms/full``. Deleting a BOM
removes its items.
"""
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Request, Query
from sqlalchemy.orm import Session

from procurehub.db.session import get_db
from procurehub.db.models import Bom, BomItem, Product
from procurehub.core.rbac import as_utc, require_buyer
from procurehub.core.logging import get_logger
from procurehub.schemas.catalog import (
    BomCreate, BomUpdate, BomResponse, BomDetailResponse, BomSummary,
    BomItemCreate, BomItemUpdate, BomItemResponse, BomWithItemsCreate,
)
from procurehub.services.audit import record_audit
from procurehub.services.bom_builder import fold_by_category

logger = get_logger(__name__)

router = APIRouter(prefix="/api/boms", tags=["BOMs"])


def get_bom_or_404(db: Session, bom_id: int) -> Bom:
    bom = db.query(Bom).filter(Bom.id == bom_id).first()
    if not bom:
        raise HTTPException(status_code=404, detail="BOM not found")
    return bom


def check_products_exist(db: Session, product_ids) -> None:
    wanted = set(product_ids)
    found = {pid for (pid,) in db.query(Product.id).filter(Product.id.in_(wanted)).all()}
    missing = sorted(wanted - found)
    if missing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Product not found: {', '.join(str(m) for m in missing)}",
        )


def bom_to_response(bom: Bom, with_items: bool = False):
    data = BomResponse.model_validate(bom).model_dump()
    data["item_count"] = len(bom.items)
    if with_items:
        data["items"] = [BomItemResponse.model_validate(i) for i in bom.items]
        return BomDetailResponse(**data)
    return BomResponse(**data)


# ============= BOMS =============

@router.get("", response_model=List[BomResponse])
async def list_boms(
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, description="Search by name"),
    limit: int = Query(100, le=500),
    offset: int = Query(0),
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    query = db.query(Bom)
    if is_active is not None:
        query = query.filter(Bom.is_active == is_active)
    if search:
        query = query.filter(Bom.name.ilike(f"%{search}%"))
    boms = query.order_by(Bom.created_at.desc(), Bom.id.desc()).offset(offset).limit(limit).all()
    return [bom_to_response(b) for b in boms]


@router.post("", response_model=BomResponse, status_code=status.HTTP_201_CREATED)
async def create_bom(
    request: Request,
    bom_data: BomCreate,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    """Create a BOM header. Items are added separately."""
    bom = Bom(**bom_data.model_dump(), created_by=user_context["user_id"])
    db.add(bom)
    db.flush()
    record_audit(db, request, user_context["user_id"], "create_bom", "bom", bom.id, {"name": bom.name})
    db.commit()
    db.refresh(bom)
    return bom_to_response(bom)


@router.post("/full", response_model=BomDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_bom_with_items(
    request: Request,
    bom_data: BomWithItemsCreate,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    """Create a BOM header and all of its items in one transaction."""
    check_products_exist(db, [i.product_id for i in bom_data.items])

    bom = Bom(**bom_data.model_dump(exclude={"items"}), created_by=user_context["user_id"])
    bom.items = [BomItem(**i.model_dump()) for i in bom_data.items]
    db.add(bom)
    db.flush()

    record_audit(db, request, user_context["user_id"], "create_bom", "bom", bom.id,
                 {"name": bom.name, "items": len(bom_data.items)})
    db.commit()
    db.refresh(bom)
    logger.info(f"BOM {bom.id} created with {len(bom.items)} items")
    return bom_to_response(bom, with_items=True)


@router.get("/{bom_id}", response_model=BomDetailResponse)
async def get_bom(
    bom_id: int,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    return bom_to_response(get_bom_or_404(db, bom_id), with_items=True)


@router.put("/{bom_id}", response_model=BomResponse)
async def update_bom(
    bom_id: int,
    request: Request,
    update_data: BomUpdate,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    bom = get_bom_or_404(db, bom_id)
    changes = update_data.model_dump(exclude_unset=True)
    for key, value in changes.items():
        setattr(bom, key, value)

    if bom.valid_from and bom.valid_to and as_utc(bom.valid_to) < as_utc(bom.valid_from):
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="valid_to must not be earlier than valid_from",
        )

    record_audit(db, request, user_context["user_id"], "update_bom", "bom", bom_id,
                 update_data.model_dump(mode="json", exclude_unset=True))
    db.commit()
    db.refresh(bom)
    return bom_to_response(bom)


@router.delete("/{bom_id}")
async def delete_bom(
    bom_id: int,
    request: Request,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    """Delete a BOM together with its items."""
    bom = get_bom_or_404(db, bom_id)
    item_count = len(bom.items)
    db.delete(bom)
    record_audit(db, request, user_context["user_id"], "delete_bom", "bom", bom_id,
                 {"name": bom.name, "items": item_count})
    db.commit()
    return {"message": "BOM deleted successfully"}


@router.get("/{bom_id}/summary", response_model=BomSummary)
async def get_bom_summary(
    bom_id: int,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    """Total value, total quantity and value per product category."""
    bom = get_bom_or_404(db, bom_id)
    return BomSummary(
        bom_id=bom.id,
        item_count=len(bom.items),
        total_quantity=sum((i.quantity for i in bom.items), Decimal("0")),
        total_value=sum((i.total_price or Decimal("0") for i in bom.items), Decimal("0.00")),
        category_breakdown=fold_by_category(
            (i.product.category if i.product else None, i.total_price) for i in bom.items
        ),
    )


# ============= ITEMS =============

@router.get("/{bom_id}/items", response_model=List[BomItemResponse])
async def list_bom_items(
    bom_id: int,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    return get_bom_or_404(db, bom_id).items


@router.post("/{bom_id}/items", response_model=BomItemResponse, status_code=status.HTTP_201_CREATED)
async def add_bom_item(
    bom_id: int,
    request: Request,
    item_data: BomItemCreate,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    """Add one line to an existing BOM. total_price is stored as sent."""
    get_bom_or_404(db, bom_id)
    check_products_exist(db, [item_data.product_id])

    item = BomItem(bom_id=bom_id, **item_data.model_dump())
    db.add(item)
    db.flush()
    record_audit(db, request, user_context["user_id"], "add_bom_item", "bom", bom_id,
                 {"item_id": item.id, "product_id": item.product_id})
    db.commit()
    db.refresh(item)
    return item


def get_item_or_404(db: Session, bom_id: int, item_id: int) -> BomItem:
    item = db.query(BomItem).filter(BomItem.id == item_id, BomItem.bom_id == bom_id).first()
    if not item:
        raise HTTPException(status_code=404, detail="BOM item not found")
    return item


@router.put("/{bom_id}/items/{item_id}", response_model=BomItemResponse)
async def update_bom_item(
    bom_id: int,
    item_id: int,
    request: Request,
    update_data: BomItemUpdate,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    item = get_item_or_404(db, bom_id, item_id)
    for key, value in update_data.model_dump(exclude_unset=True).items():
        setattr(item, key, value)

    record_audit(db, request, user_context["user_id"], "update_bom_item", "bom", bom_id,
                 {"item_id": item_id, **update_data.model_dump(mode="json", exclude_unset=True)})
    db.commit()
    db.refresh(item)
    return item


@router.delete("/{bom_id}/items/{item_id}")
async def delete_bom_item(
    bom_id: int,
    item_id: int,
    request: Request,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    item = get_item_or_404(db, bom_id, item_id)
    db.delete(item)
    record_audit(db, request, user_context["user_id"], "delete_bom_item", "bom", bom_id, {"item_id": item_id})
    db.commit()
    return {"message": "BOM item deleted successfully"}
