"""
Product catalogue API routes.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Request, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy import or_

from procurehub.db.session import get_db
from procurehub.db.models import Product
from procurehub.core.rbac import require_buyer, require_sourcing_manager, get_current_user_context
from procurehub.schemas.catalog import ProductCreate, ProductUpdate, ProductResponse
from procurehub.services.audit import record_audit

router = APIRouter(prefix="/api/products", tags=["Products"])


def get_product_or_404(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("", response_model=List[ProductResponse])
async def list_products(
    is_active: Optional[bool] = Query(None, description="Filter by active flag"),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Search by name or code"),
    limit: int = Query(200, le=1000),
    offset: int = Query(0),
    user_context: dict = Depends(get_current_user_context),
    db: Session = Depends(get_db)
):
    """List catalogue products."""
    query = db.query(Product)
    if is_active is not None:
        query = query.filter(Product.is_active == is_active)
    if category:
        query = query.filter(Product.category == category)
    if search:
        query = query.filter(
            or_(
                Product.item_name.ilike(f"%{search}%"),
                Product.internal_code.ilike(f"%{search}%"),
                Product.external_code.ilike(f"%{search}%"),
            )
        )
    return query.order_by(Product.item_name).offset(offset).limit(limit).all()


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    request: Request,
    product_data: ProductCreate,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    product = Product(**product_data.model_dump(), created_by=user_context["user_id"])
    db.add(product)
    db.flush()
    record_audit(db, request, user_context["user_id"], "create_product", "product", product.id,
                 {"item_name": product.item_name})
    db.commit()
    db.refresh(product)
    return product


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    user_context: dict = Depends(get_current_user_context),
    db: Session = Depends(get_db)
):
    return get_product_or_404(db, product_id)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    request: Request,
    update_data: ProductUpdate,
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    product = get_product_or_404(db, product_id)
    for key, value in update_data.model_dump(exclude_unset=True).items():
        setattr(product, key, value)

    record_audit(db, request, user_context["user_id"], "update_product", "product", product_id,
                 update_data.model_dump(mode="json", exclude_unset=True))
    db.commit()
    db.refresh(product)
    return product


@router.post("/{product_id}/approve", response_model=ProductResponse)
async def approve_product(
    product_id: int,
    request: Request,
    user_context: dict = Depends(require_sourcing_manager),
    db: Session = Depends(get_db)
):
    """Record the approving user and activate the product."""
    product = get_product_or_404(db, product_id)
    product.approved_by = user_context["user_id"]
    product.is_active = True

    record_audit(db, request, user_context["user_id"], "approve_product", "product", product_id)
    db.commit()
    db.refresh(product)
    return product


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    request: Request,
    user_context: dict = Depends(require_sourcing_manager),
    db: Session = Depends(get_db)
):
    """Delete a product that no BOM or PO line uses. Deactivate it otherwise."""
    product = get_product_or_404(db, product_id)
    item_name = product.item_name
    db.delete(product)
    record_audit(db, request, user_context["user_id"], "delete_product", "product", product_id,
                 {"item_name": item_name})
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Product is used by a BOM or purchase order; deactivate it instead",
        )
    return {"message": "Product deleted successfully"}
