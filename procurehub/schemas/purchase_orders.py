from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from procurehub.db.models import POStatus


class PoLineItemCreate(BaseModel):
    product_id: int
    quantity: Decimal = Field(..., gt=0, decimal_places=3)
    unit_price: Decimal = Field(..., ge=0, decimal_places=2)
    delivery_date: Optional[datetime] = None


class PoLineItemResponse(BaseModel):
    id: int
    po_id: int
    product_id: int
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    delivery_date: Optional[datetime]
    status: str

    model_config = {"from_attributes": True}


class PurchaseOrderCreate(BaseModel):
    vendor_id: int
    rfx_id: Optional[int] = None
    auction_id: Optional[int] = None
    total_amount: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    terms_and_conditions: Optional[str] = None
    delivery_schedule: Optional[dict] = None
    payment_terms: Optional[str] = None
    attachments: List[str] = Field(default_factory=list)
    line_items: List[PoLineItemCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_amount(self):
        if not self.line_items and self.total_amount is None:
            raise ValueError("total_amount is required when no line items are given")
        return self


class PurchaseOrderUpdate(BaseModel):
    total_amount: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    terms_and_conditions: Optional[str] = None
    delivery_schedule: Optional[dict] = None
    payment_terms: Optional[str] = None
    attachments: Optional[List[str]] = None


class POStatusUpdate(BaseModel):
    status: POStatus


class PurchaseOrderResponse(BaseModel):
    id: int
    po_number: str
    vendor_id: int
    rfx_id: Optional[int]
    auction_id: Optional[int]
    total_amount: Decimal
    status: str
    terms_and_conditions: Optional[str]
    delivery_schedule: Optional[dict] = None
    payment_terms: Optional[str]
    attachments: Optional[List[str]] = None
    acknowledged_at: Optional[datetime]
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PurchaseOrderDetailResponse(PurchaseOrderResponse):
    line_items: List[PoLineItemResponse] = Field(default_factory=list)
