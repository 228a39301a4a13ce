"""
Role-Based Access Control (RBAC) dependencies.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from procurehub.core.security import decode_token, security, optional_security
from procurehub.db.session import get_db


class Role(str, Enum):
    VENDOR = "vendor"
    BUYER_USER = "buyer_user"
    SOURCING_MANAGER = "sourcing_manager"
    BUYER_ADMIN = "buyer_admin"


# Role hierarchy: higher index = more permissions
ROLE_HIERARCHY = {
    Role.VENDOR: 0,
    Role.BUYER_USER: 1,
    Role.SOURCING_MANAGER: 2,
    Role.BUYER_ADMIN: 3,
}


def has_permission(user_role: Role, required_role: Role) -> bool:
    """Check if user role has sufficient permissions."""
    return ROLE_HIERARCHY.get(user_role, 0) >= ROLE_HIERARCHY.get(required_role, 0)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _load_context(token: str, db: Session) -> dict:
    from procurehub.db.models import User, UserSession

    payload = decode_token(token)

    user_id_raw = payload.get("sub")
    sid = payload.get("sid")
    if user_id_raw is None or sid is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing subject or session",
            headers={"WWW-Authenticate": "Bearer"},
        )

    session_row = db.query(UserSession).filter(UserSession.sid == sid).first()
    if not session_row or as_utc(session_row.expire) <= datetime.now(timezone.utc):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired or revoked",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.query(User).filter(User.id == int(user_id_raw)).first()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is disabled",
        )

    return {
        "sub": str(user.id),
        "user_id": user.id,
        "email": user.email,
        "role": Role(user.role),
        "org_id": user.organization_id,
        "sid": sid,
        "vendor_id": user.vendor_profile.id if user.vendor_profile else None,
    }


async def get_current_user_context(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> dict:
    """Resolve the bearer token to the current user, checking the backing session."""
    return _load_context(credentials.credentials, db)


async def get_optional_user_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    db: Session = Depends(get_db),
) -> Optional[dict]:
    """Like get_current_user_context but anonymous requests yield None."""
    if credentials is None:
        return None
    try:
        return _load_context(credentials.credentials, db)
    except HTTPException:
        return None


class RBACChecker:
    """Dependency for checking role-based access."""

    def __init__(self, required_role: Role):
        self.required_role = required_role

    async def __call__(
        self,
        user_context: dict = Depends(get_current_user_context),
    ) -> dict:
        if not has_permission(user_context["role"], self.required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required: {self.required_role.value}",
            )
        return user_context


# Convenience dependencies for common role checks
require_vendor = RBACChecker(Role.VENDOR)
require_buyer = RBACChecker(Role.BUYER_USER)
require_sourcing_manager = RBACChecker(Role.SOURCING_MANAGER)
require_admin = RBACChecker(Role.BUYER_ADMIN)


def ensure_vendor_scope(user_context: dict, vendor_id: int) -> None:
    """Vendor logins may only act for their own vendor profile."""
    if user_context["role"] != Role.VENDOR:
        return
    if user_context.get("vendor_id") != vendor_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Vendors may only act on their own profile",
        )
