"""Auth API router: login, refresh, logout, me, permissions."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kanvaro.core.config import settings
from kanvaro.core.exceptions import AuthenticationError, KanvaroError
from kanvaro.core.rate_limiter import limiter
from kanvaro.core.security import (
    CurrentUser, decode_token, get_current_user, security_scheme, user_from_payload,
)
from kanvaro.db.session import get_db
from kanvaro.schemas.schemas import (
    LoginRequest, MessageResponse, RefreshRequest, TokenResponse, UserOut,
)
from kanvaro.services.audit_service import audit_service
from kanvaro.services.auth_service import auth_service
from kanvaro.services.permission_service import permission_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate and return JWT tokens."""
    try:
        result = auth_service.authenticate(db, body.email, body.password)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))

    account = result["user"]
    audit_service.record_request(
        db, request,
        CurrentUser(account["id"], account["organization_id"], account["role"], account["email"]),
        action="auth.login", resource_type="user", resource_id=account["id"],
    )
    return result


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, db: Session = Depends(get_db)):
    """Refresh access token."""
    try:
        return auth_service.refresh_access_token(db, body.refresh_token)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Revoke all refresh tokens."""
    auth_service.logout(db, user.id)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserOut)
async def get_me(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Get current user profile."""
    return auth_service.get_user(db, user.id)


@router.get("/permissions")
async def get_permissions(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    db: Session = Depends(get_db),
):
    """Effective permissions of the caller.

    Resolution failures degrade to the read-only default set with HTTP 200 so
    clients can still render navigation.
    """
    user_id = None
    try:
        if credentials is None:
            raise AuthenticationError("Not authenticated")
        user = user_from_payload(decode_token(credentials.credentials))
        user_id = user.id
        return permission_service.get_user_permissions(db, user.id).to_dict()
    except (HTTPException, KanvaroError, SQLAlchemyError, ValueError) as e:
        logger.warning("Permission resolution failed, returning safe default: %s", e)
        return permission_service.safe_default(user_id).to_dict()
