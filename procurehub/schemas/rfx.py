from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from procurehub.db.models import InvitationStatus, RfxStatus, RfxType


class RfxEventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    type: RfxType
    scope: Optional[str] = None
    criteria: Optional[str] = None
    due_date: Optional[datetime] = None
    evaluation_parameters: Optional[dict] = None
    attachments: List[str] = Field(default_factory=list)
    bom_id: Optional[int] = None
    contact_person: Optional[str] = Field(None, max_length=255)
    budget: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    vendor_ids: Optional[List[int]] = None  # invited on creation


class RfxEventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    scope: Optional[str] = None
    criteria: Optional[str] = None
    due_date: Optional[datetime] = None
    evaluation_parameters: Optional[dict] = None
    attachments: Optional[List[str]] = None
    bom_id: Optional[int] = None
    contact_person: Optional[str] = None
    budget: Optional[Decimal] = Field(None, ge=0, decimal_places=2)


class RfxStatusUpdate(BaseModel):
    status: RfxStatus


class RfxEventResponse(BaseModel):
    id: int
    title: str
    reference_no: Optional[str]
    type: str
    scope: Optional[str]
    criteria: Optional[str]
    due_date: Optional[datetime]
    status: str
    evaluation_parameters: Optional[dict] = None
    attachments: Optional[List[str]] = None
    bom_id: Optional[int]
    contact_person: Optional[str]
    budget: Optional[Decimal]
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    invitation_count: int = 0
    response_count: int = 0

    model_config = {"from_attributes": True}


class InvitationCreate(BaseModel):
    vendor_ids: List[int] = Field(..., min_length=1)


class InvitationStatusUpdate(BaseModel):
    status: InvitationStatus


class InvitationResponse(BaseModel):
    rfx_id: int
    vendor_id: int
    status: str
    invited_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RfxResponseCreate(BaseModel):
    vendor_id: int
    response: Optional[dict] = None
    quoted_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    delivery_terms: Optional[str] = None
    payment_terms: Optional[str] = None
    lead_time: Optional[int] = Field(None, ge=0)
    attachments: List[str] = Field(default_factory=list)


class RfxResponseOut(BaseModel):
    id: int
    rfx_id: int
    vendor_id: int
    response: Optional[dict] = None
    quoted_price: Optional[Decimal]
    delivery_terms: Optional[str]
    payment_terms: Optional[str]
    lead_time: Optional[int]
    attachments: Optional[List[str]] = None
    submitted_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
