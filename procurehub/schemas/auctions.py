from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from procurehub.db.models import AuctionStatus


class AuctionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    items: Optional[list] = None
    start_time: datetime
    end_time: datetime
    reserve_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    bid_rules: Optional[dict] = None
    vendor_ids: Optional[List[int]] = None  # registered as participants

    @model_validator(mode="after")
    def check_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class AuctionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    items: Optional[list] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    reserve_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    bid_rules: Optional[dict] = None
    status: Optional[AuctionStatus] = None
    winner_id: Optional[int] = None
    winning_bid: Optional[Decimal] = Field(None, ge=0, decimal_places=2)


class AuctionResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    items: Optional[list] = None
    start_time: datetime
    end_time: datetime
    reserve_price: Optional[Decimal]
    current_bid: Optional[Decimal]
    bid_rules: Optional[dict] = None
    status: str
    winner_id: Optional[int]
    winning_bid: Optional[Decimal]
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    participant_count: int = 0
    bid_count: int = 0

    model_config = {"from_attributes": True}


class ParticipantCreate(BaseModel):
    vendor_id: int


class ParticipantResponse(BaseModel):
    auction_id: int
    vendor_id: int
    registered_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BidCreate(BaseModel):
    vendor_id: int
    amount: Decimal = Field(..., gt=0, decimal_places=2)


class BidResponse(BaseModel):
    id: int
    auction_id: int
    vendor_id: int
    amount: Decimal
    timestamp: Optional[datetime] = None
    is_winning: Optional[bool] = False

    model_config = {"from_attributes": True}
