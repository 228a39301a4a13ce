from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from procurehub.db.models import ApprovalEntityType, ApprovalStatus


class ApprovalCreate(BaseModel):
    entity_type: ApprovalEntityType
    entity_id: int
    approver_id: int
    comments: Optional[str] = None


class ApprovalDecision(BaseModel):
    status: ApprovalStatus
    comments: Optional[str] = Field(None, max_length=2000)


class ApprovalResponse(BaseModel):
    id: int
    entity_type: str
    entity_id: int
    approver_id: int
    status: str
    comments: Optional[str]
    approved_at: Optional[datetime]
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class NotificationResponse(BaseModel):
    id: int
    title: str
    message: Optional[str]
    type: str
    is_read: bool
    entity_type: Optional[str]
    entity_id: Optional[int]
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
