"""Auth service: password login, refresh-token bookkeeping and account creation."""

import hashlib
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from kanvaro.core.exceptions import AuthenticationError, ResourceConflictError, ResourceNotFoundError
from kanvaro.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from kanvaro.models.user import RefreshToken, User
from kanvaro.permissions.catalog import SystemRole

logger = logging.getLogger(__name__)


def _claims(account: User) -> Dict[str, str]:
    """JWT claims; every value is a string so jose round-trips them unchanged."""
    return {
        "sub": str(account.id),
        "org": str(account.organization_id),
        "email": account.email,
        "role": SystemRole(account.role).value,
    }


def _fingerprint(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _summary(account: User) -> Dict[str, Any]:
    return {
        "id": account.id,
        "email": account.email,
        "first_name": account.first_name,
        "last_name": account.last_name,
        "organization_id": account.organization_id,
        "role": SystemRole(account.role).value,
        "avatar_url": account.avatar_url,
    }


class AuthService:

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> Dict[str, Any]:
        """Check credentials and issue an access/refresh pair.

        Unknown email and wrong password produce the same error.
        """
        account = db.query(User).filter(User.email == email.strip().lower()).first()
        if account is None or not verify_password(password, account.hashed_password):
            logger.info("Failed login for %s", email)
            raise AuthenticationError("Invalid email or password")
        if not account.is_active:
            raise AuthenticationError("Account is deactivated")

        claims = _claims(account)
        refresh = create_refresh_token(claims)
        expires = datetime.fromtimestamp(decode_token(refresh)["exp"], tz=timezone.utc)
        db.add(RefreshToken(
            user_id=account.id,
            token_hash=_fingerprint(refresh),
            expires_at=expires.replace(tzinfo=None),
        ))
        account.last_login_at = _now()
        db.commit()

        return {
            "access_token": create_access_token(claims),
            "refresh_token": refresh,
            "token_type": "bearer",
            "user": _summary(account),
        }

    @staticmethod
    def refresh_access_token(db: Session, refresh_token: str) -> Dict[str, Any]:
        claims = decode_token(refresh_token)
        if claims.get("type") != "refresh":
            raise AuthenticationError("Invalid refresh token")

        stored = db.query(RefreshToken).filter(
            RefreshToken.token_hash == _fingerprint(refresh_token)
        ).first()
        if stored is None or not stored.is_usable:
            raise AuthenticationError("Invalid refresh token")

        account = db.get(User, int(claims["sub"]))
        if account is None or not account.is_active:
            raise AuthenticationError("User not found or deactivated")
        return {"access_token": create_access_token(_claims(account)), "token_type": "bearer"}

    @staticmethod
    def logout(db: Session, user_id: int) -> int:
        """Revoke every live refresh token of the user; returns how many."""
        revoked = db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked_at.is_(None),
        ).update({RefreshToken.revoked_at: _now()}, synchronize_session=False)
        db.commit()
        return revoked

    @staticmethod
    def create_user(
        db: Session,
        organization_id: int,
        email: str,
        password: str,
        first_name: str,
        last_name: str = "",
        role: SystemRole = SystemRole.team_member,
        custom_role_id: Optional[int] = None,
    ) -> User:
        email = email.strip().lower()
        if db.query(User.id).filter(User.email == email).first() is not None:
            raise ResourceConflictError(f"User with email {email} already exists")

        account = User(
            organization_id=organization_id,
            email=email,
            hashed_password=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=SystemRole(role),
            custom_role_id=custom_role_id,
        )
        db.add(account)
        db.commit()
        db.refresh(account)
        logger.info("Created user %s in organization %s", account.id, organization_id)
        return account

    @staticmethod
    def get_user(db: Session, user_id: int) -> User:
        account = db.get(User, user_id)
        if account is None:
            raise ResourceNotFoundError(f"User {user_id} not found")
        return account


auth_service = AuthService()
