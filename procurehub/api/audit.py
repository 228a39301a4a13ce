"""
Audit Log API routes (admin only).
"""
from typing import List, Optional
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session
from sqlalchemy import desc, func

from procurehub.db.session import get_db
from procurehub.db.models import AuditLog
from procurehub.core.rbac import require_admin

router = APIRouter(prefix="/api/audit", tags=["Audit"])


# ============= SCHEMAS =============

class AuditLogResponse(BaseModel):
    id: int
    timestamp: Optional[datetime]
    user_id: Optional[int]
    user_email: Optional[str]
    action: str
    entity_type: Optional[str]
    entity_id: Optional[int]
    details: Optional[dict]
    ip_address: Optional[str]


class AuditSummary(BaseModel):
    total_events: int
    events_today: int
    top_actions: List[dict]
    top_users: List[dict]


# ============= ROUTES =============

@router.get("/logs", response_model=List[AuditLogResponse])
async def list_audit_logs(
    action: Optional[str] = Query(None, description="Filter by action type"),
    entity_type: Optional[str] = Query(None, description="Filter by entity type"),
    entity_id: Optional[int] = Query(None, description="Filter by entity id"),
    user_id: Optional[int] = Query(None, description="Filter by user"),
    start_date: Optional[datetime] = Query(None, description="Start date filter"),
    end_date: Optional[datetime] = Query(None, description="End date filter"),
    limit: int = Query(100, le=500),
    offset: int = Query(0),
    user_context: dict = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """List audit logs, newest first."""
    query = db.query(AuditLog)

    if action:
        query = query.filter(AuditLog.action == action)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(AuditLog.entity_id == entity_id)
    if user_id:
        query = query.filter(AuditLog.user_id == user_id)
    if start_date:
        query = query.filter(AuditLog.timestamp >= start_date)
    if end_date:
        query = query.filter(AuditLog.timestamp <= end_date)

    logs = query.order_by(desc(AuditLog.timestamp), desc(AuditLog.id)).offset(offset).limit(limit).all()

    return [
        AuditLogResponse(
            id=log.id,
            timestamp=log.timestamp,
            user_id=log.user_id,
            user_email=log.user.email if log.user else None,
            action=log.action,
            entity_type=log.entity_type,
            entity_id=log.entity_id,
            details=log.details,
            ip_address=log.ip_address,
        )
        for log in logs
    ]


@router.get("/summary", response_model=AuditSummary)
async def get_audit_summary(
    user_context: dict = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Totals plus the busiest actions and users of the last 7 days."""
    now = datetime.now(timezone.utc)
    total = db.query(AuditLog).count()

    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    today_count = db.query(AuditLog).filter(AuditLog.timestamp >= today_start).count()

    week_ago = now - timedelta(days=7)
    action_counts = db.query(
        AuditLog.action,
        func.count(AuditLog.id).label('count')
    ).filter(
        AuditLog.timestamp >= week_ago
    ).group_by(AuditLog.action).order_by(desc('count')).limit(10).all()

    user_counts = db.query(
        AuditLog.user_id,
        func.count(AuditLog.id).label('count')
    ).filter(
        AuditLog.timestamp >= week_ago,
        AuditLog.user_id.isnot(None)
    ).group_by(AuditLog.user_id).order_by(desc('count')).limit(10).all()

    return AuditSummary(
        total_events=total,
        events_today=today_count,
        top_actions=[{"action": a, "count": c} for a, c in action_counts],
        top_users=[{"user_id": u, "count": c} for u, c in user_counts],
    )


@router.get("/actions")
async def list_action_types(
    user_context: dict = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Distinct action names, for filter dropdowns."""
    actions = db.query(AuditLog.action).distinct().order_by(AuditLog.action).all()
    return {"actions": [a for (a,) in actions]}
