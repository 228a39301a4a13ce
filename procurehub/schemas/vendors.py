from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from procurehub.db.models import VendorStatus


class VendorBase(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=255)
    contact_person: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    pan_number: Optional[str] = Field(None, max_length=50)
    gst_number: Optional[str] = Field(None, max_length=50)
    tan_number: Optional[str] = Field(None, max_length=50)
    bank_details: Optional[dict] = None
    address: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)
    years_of_experience: Optional[int] = Field(None, ge=0)
    office_locations: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    performance_score: Optional[Decimal] = Field(None, ge=0, lt=10, decimal_places=2)
    user_id: Optional[int] = None


class VendorCreate(VendorBase):
    pass


class VendorUpdate(BaseModel):
    company_name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact_person: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    pan_number: Optional[str] = None
    gst_number: Optional[str] = None
    tan_number: Optional[str] = None
    bank_details: Optional[dict] = None
    address: Optional[str] = None
    categories: Optional[List[str]] = None
    certifications: Optional[List[str]] = None
    years_of_experience: Optional[int] = Field(None, ge=0)
    office_locations: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    performance_score: Optional[Decimal] = Field(None, ge=0, lt=10, decimal_places=2)
    user_id: Optional[int] = None


class VendorStatusUpdate(BaseModel):
    status: VendorStatus


class VendorResponse(VendorBase):
    id: int
    email: Optional[str] = None
    categories: Optional[List[str]] = None
    certifications: Optional[List[str]] = None
    office_locations: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    status: str
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
