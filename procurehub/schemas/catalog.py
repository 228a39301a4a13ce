"""
Product catalogue and bill-of-materials projections.

The BOM builder client posts BomCreate and BomItemCreate exactly as the
server validates them.
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


# ============= PRODUCTS =============

class ProductBase(BaseModel):
    item_name: str = Field(..., min_length=1, max_length=255)
    internal_code: Optional[str] = Field(None, max_length=100)
    external_code: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=255)
    sub_category: Optional[str] = Field(None, max_length=255)
    uom: Optional[str] = Field(None, max_length=50)
    base_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    specifications: Optional[dict] = None
    tags: List[str] = Field(default_factory=list)
    is_active: bool = True


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    item_name: Optional[str] = Field(None, min_length=1, max_length=255)
    internal_code: Optional[str] = None
    external_code: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None
    uom: Optional[str] = None
    base_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    specifications: Optional[dict] = None
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = None


class ProductResponse(ProductBase):
    id: int
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = True
    approved_by: Optional[int] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ============= BOMS =============

class BomItemCreate(BaseModel):
    product_id: int
    quantity: Decimal = Field(..., gt=0, decimal_places=3)
    uom: Optional[str] = Field(None, max_length=50)
    unit_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    total_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)


class BomItemUpdate(BaseModel):
    quantity: Optional[Decimal] = Field(None, gt=0, decimal_places=3)
    uom: Optional[str] = None
    unit_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    total_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)


class BomItemResponse(BaseModel):
    id: int
    bom_id: int
    product_id: int
    quantity: Decimal
    uom: Optional[str]
    unit_price: Optional[Decimal]
    total_price: Optional[Decimal]
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BomCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    version: str = Field("1.0", max_length=50)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=255)
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    is_active: bool = True

    @model_validator(mode="after")
    def check_validity_window(self):
        if self.valid_from and self.valid_to and self.valid_to < self.valid_from:
            raise ValueError("valid_to must not be earlier than valid_from")
        return self


class BomUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    version: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = None


class BomWithItemsCreate(BomCreate):
    """Header plus items, committed in one transaction."""
    items: List[BomItemCreate] = Field(..., min_length=1)


class BomResponse(BaseModel):
    id: int
    name: str
    version: Optional[str]
    description: Optional[str]
    category: Optional[str]
    valid_from: Optional[datetime]
    valid_to: Optional[datetime]
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = True
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    item_count: int = 0

    model_config = {"from_attributes": True}


class BomDetailResponse(BomResponse):
    items: List[BomItemResponse] = Field(default_factory=list)


class BomSummary(BaseModel):
    bom_id: int
    item_count: int
    total_quantity: Decimal
    total_value: Decimal
    category_breakdown: Dict[str, Decimal]
