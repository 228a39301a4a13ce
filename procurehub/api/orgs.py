"""
Organization API routes.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from procurehub.db.session import get_db
from procurehub.db.models import Organization
from procurehub.core.rbac import require_admin, require_buyer
from procurehub.schemas.users import OrganizationCreate, OrganizationUpdate, OrganizationResponse
from procurehub.services.audit import record_audit

router = APIRouter(prefix="/api/orgs", tags=["Organizations"])


@router.get("", response_model=List[OrganizationResponse])
async def list_organizations(
    user_context: dict = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return db.query(Organization).order_by(Organization.name).all()


@router.post("", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(
    request: Request,
    org_data: OrganizationCreate,
    user_context: dict = Depends(require_admin),
    db: Session = Depends(get_db)
):
    org = Organization(**org_data.model_dump())
    db.add(org)
    db.flush()
    record_audit(db, request, user_context["user_id"], "create_organization", "organization", org.id,
                 {"name": org.name})
    db.commit()
    db.refresh(org)
    return org


@router.get("/current", response_model=OrganizationResponse)
async def get_current_organization(
    user_context: dict = Depends(require_buyer),
    db: Session = Depends(get_db)
):
    """Organization of the signed-in buyer."""
    org = db.query(Organization).filter(Organization.id == user_context["org_id"]).first()
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


@router.get("/{org_id}", response_model=OrganizationResponse)
async def get_organization(
    org_id: int,
    user_context: dict = Depends(require_admin),
    db: Session = Depends(get_db)
):
    org = db.query(Organization).filter(Organization.id == org_id).first()
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


@router.put("/{org_id}", response_model=OrganizationResponse)
async def update_organization(
    org_id: int,
    request: Request,
    update_data: OrganizationUpdate,
    user_context: dict = Depends(require_admin),
    db: Session = Depends(get_db)
):
    org = db.query(Organization).filter(Organization.id == org_id).first()
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")

    changes = update_data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(org, field, value)

    record_audit(db, request, user_context["user_id"], "update_organization", "organization", org.id, changes)
    db.commit()
    db.refresh(org)
    return org
