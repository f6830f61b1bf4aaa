"""JWT authentication and permission-based authorization helpers."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from kanvaro.core.config import settings
from kanvaro.core.exceptions import forbidden, unauthorized
from kanvaro.db.session import get_db
from kanvaro.permissions.catalog import Permission
from kanvaro.services.permission_service import permission_service

security_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    """Identity resolved from an access token."""

    id: int
    organization_id: int
    role: str
    email: Optional[str] = None


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        # malformed stored hash
        return False


def _sign(claims: Dict[str, Any], token_type: str, lifetime: timedelta) -> str:
    body = dict(claims, type=token_type, exp=datetime.now(timezone.utc) + lifetime)
    return jwt.encode(body, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_access_token(claims: Dict[str, Any], lifetime: Optional[timedelta] = None) -> str:
    return _sign(claims, "access", lifetime or timedelta(minutes=settings.JWT_EXPIRY_MINUTES))


def create_refresh_token(claims: Dict[str, Any]) -> str:
    return _sign(claims, "refresh", timedelta(days=settings.REFRESH_TOKEN_EXPIRY_DAYS))


def decode_token(token: str) -> Dict[str, Any]:
    """Verify signature and expiry. Any failure is a 401."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise unauthorized("Invalid or expired token")


def user_from_payload(payload: Dict[str, Any]) -> CurrentUser:
    """Build a CurrentUser from decoded access-token claims."""
    if payload.get("type") != "access":
        raise unauthorized("Invalid token type")
    subject, organization = payload.get("sub"), payload.get("org")
    if subject is None or organization is None:
        raise unauthorized("Invalid token payload")
    return CurrentUser(
        id=int(subject),
        organization_id=int(organization),
        role=payload.get("role", "viewer"),
        email=payload.get("email"),
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> CurrentUser:
    if credentials is None:
        raise unauthorized()
    return user_from_payload(decode_token(credentials.credentials))


class RequirePermission:
    """Dependency that checks the caller holds a permission.

    When ``project_param`` is given, the named path parameter is read as the
    project id so project-scoped grants are honored.
    """

    def __init__(self, permission: Permission, project_param: Optional[str] = None):
        self.permission = permission
        self.project_param = project_param

    async def __call__(
        self,
        request: Request,
        user: CurrentUser = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> CurrentUser:
        project_id = None
        if self.project_param:
            raw = request.path_params.get(self.project_param)
            project_id = int(raw) if raw and raw.isdigit() else None

        if not permission_service.has_permission(db, user.id, self.permission, project_id):
            raise forbidden(f"Insufficient permissions: {self.permission.value}")
        return user
