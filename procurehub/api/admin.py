"""
Admin API routes - user management.
Requires BUYER_ADMIN for all endpoints.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Request, Query
from sqlalchemy.orm import Session
from sqlalchemy import func

from procurehub.db.session import get_db
from procurehub.db.models import User, UserSession
from procurehub.core.security import get_password_hash
from procurehub.core.rbac import require_admin
from procurehub.schemas.users import UserCreate, UserUpdate, UserResponse
from procurehub.services.audit import record_audit

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/users", response_model=List[UserResponse])
async def list_users(
    role: Optional[str] = Query(None),
    organization_id: Optional[int] = Query(None),
    user_context: dict = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """List users. Admin-only."""
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if organization_id:
        query = query.filter(User.organization_id == organization_id)
    return query.order_by(User.email).all()


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: Request,
    user_data: UserCreate,
    user_context: dict = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Create a user. Admin-only.

    Without a password the account can only sign in through the external
    identity provider.
    """
    existing = db.query(User).filter(func.lower(User.email) == user_data.email.lower()).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    user = User(
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password) if user_data.password else None,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        role=user_data.role.value,
        organization_id=user_data.organization_id or user_context["org_id"],
        is_active=True,
    )
    db.add(user)
    db.flush()

    record_audit(
        db, request, user_context["user_id"], "create_user", "user", user.id,
        {"email": user_data.email, "role": user_data.role.value},
    )
    db.commit()
    db.refresh(user)
    return user


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    user_context: dict = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Get a specific user by ID. Admin-only."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    request: Request,
    update_data: UserUpdate,
    user_context: dict = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update role, names, organization or active flag. Admin-only."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if user.id == user_context["user_id"] and (
        update_data.is_active is False
        or (update_data.role is not None and update_data.role.value != user.role)
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot change your own role or deactivate yourself"
        )

    changes = update_data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(user, field, value.value if hasattr(value, "value") else value)

    # A deactivated account loses its open sessions
    if update_data.is_active is False:
        db.query(UserSession).filter(
            UserSession.sess["user_id"].as_integer() == user.id
        ).delete(synchronize_session=False)

    record_audit(
        db, request, user_context["user_id"], "update_user", "user", user_id,
        update_data.model_dump(mode="json", exclude_unset=True),
    )
    db.commit()
    db.refresh(user)
    return user
