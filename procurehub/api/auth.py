"""
Authentication API routes.

Every login opens a server-side session row; the issued bearer token carries
its ``sid`` and stops working as soon as the row is gone or expired.
"""
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session
from sqlalchemy import func

from procurehub.db.session import get_db
from procurehub.db.models import User, UserSession
from procurehub.core.security import verify_password, create_access_token, new_session_id, session_expiry
from procurehub.core.rbac import get_current_user_context, get_optional_user_context
from procurehub.core.config import settings
from procurehub.core.logging import get_logger
from procurehub.schemas.users import LoginRequest, TokenResponse, UserResponse
from procurehub.services.audit import record_audit

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])
# Browser entry points kept at the top level of /api
session_router = APIRouter(prefix="/api", tags=["Authentication"])


def open_session(db: Session, user: User, request: Optional[Request] = None) -> UserSession:
    """Create the session row backing a new token."""
    session_row = UserSession(
        sid=new_session_id(),
        sess={
            "user_id": user.id,
            "ip": request.client.host if request is not None and request.client else None,
        },
        expire=session_expiry(),
    )
    db.add(session_row)
    return session_row


def revoke_session(db: Session, sid: str) -> bool:
    deleted = db.query(UserSession).filter(UserSession.sid == sid).delete()
    return deleted > 0


# ============= ROUTES =============

@router.post("/login", response_model=TokenResponse)
async def login(
    request: Request,
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """Authenticate user and return JWT token."""
    user = db.query(User).filter(func.lower(User.email) == login_data.email.lower()).first()

    if not user or not verify_password(login_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is disabled",
        )

    user.last_login = datetime.now(timezone.utc)
    session_row = open_session(db, user, request)

    token_data = {
        "sub": str(user.id),
        "sid": session_row.sid,
        "email": user.email,
        "role": user.role,
        "org_id": user.organization_id,
    }
    access_token = create_access_token(token_data)

    record_audit(db, request, user.id, "login", "user", user.id, {"email": user.email})
    db.commit()

    return TokenResponse(
        access_token=access_token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user={
            "id": user.id,
            "email": user.email,
            "full_name": user.full_name,
            "role": user.role,
            "organization_id": user.organization_id,
            "vendor_id": user.vendor_profile.id if user.vendor_profile else None,
        }
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user(
    user_context: dict = Depends(get_current_user_context),
    db: Session = Depends(get_db)
):
    """Get current authenticated user."""
    user = db.query(User).filter(User.id == user_context["user_id"]).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/logout")
async def logout(
    request: Request,
    user_context: dict = Depends(get_current_user_context),
    db: Session = Depends(get_db)
):
    """Revoke the session behind the presented token."""
    revoke_session(db, user_context["sid"])
    record_audit(db, request, user_context["user_id"], "logout", "user", user_context["user_id"])
    db.commit()
    return {"message": "Logged out successfully"}


@session_router.get("/login", include_in_schema=False)
async def login_redirect():
    """Send the browser to the configured login entry point."""
    return RedirectResponse(url=settings.LOGIN_REDIRECT_URL, status_code=status.HTTP_302_FOUND)


@session_router.get("/logout", include_in_schema=False)
async def logout_redirect(
    request: Request,
    user_context: Optional[dict] = Depends(get_optional_user_context),
    db: Session = Depends(get_db)
):
    """Revoke the current session, if any, and return to the landing page."""
    if user_context:
        revoke_session(db, user_context["sid"])
        record_audit(db, request, user_context["user_id"], "logout", "user", user_context["user_id"])
        db.commit()
    return RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)
