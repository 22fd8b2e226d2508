from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import bcrypt
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
import jwt
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from helpers.time_utils import ensure_utc
from models.config import settings
from models.exceptions import (
    AuthenticationException,
    InactiveUserException,
    InsufficientPermissionsException,
)
from repositories.database import get_db

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode(), hashed_password.encode())


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def create_access_token(
    user_id: int,
    role: db_models.UserRole | str,
    expires_delta: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Issue a signed session token.

    Claims: ``sub`` (user id as string), ``role``, ``iat`` and ``exp``.
    """
    issued_at = now or datetime.now(timezone.utc)
    expire = issued_at + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    role_value = role.value if isinstance(role, db_models.UserRole) else str(role)
    to_encode = {
        "sub": str(user_id),
        "role": role_value,
        "iat": issued_at,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> schemas.TokenPayload:
    """
    Verify a session token and return its claims.

    Raises:
        AuthenticationException: If the token is malformed, tampered with or expired.
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"require": ["sub", "iat", "exp"]},
        )
        return schemas.TokenPayload(
            user_id=int(payload["sub"]),
            role=payload.get("role", db_models.UserRole.CITIZEN.value),
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
        )
    except jwt.exceptions.ExpiredSignatureError:
        raise AuthenticationException("Session expired. Please log in again.")
    except (jwt.exceptions.InvalidTokenError, ValueError):
        raise AuthenticationException("Could not validate credentials")


def token_predates_password_change(
    user: db_models.User, issued_at: datetime
) -> bool:
    """
    True if the user changed their password after the token was issued.

    ``iat`` has whole-second precision, so the change time is truncated
    the same way before comparing.
    """
    changed_at = ensure_utc(user.password_changed_at)
    if changed_at is None:
        return False
    return int(changed_at.timestamp()) > int(issued_at.timestamp())


async def get_current_user(
    token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)
) -> db_models.User:
    """
    Get the current authenticated user from the JWT token.

    Raises:
        AuthenticationException: If the token is invalid, the user no longer
            exists, or the password changed after the token was issued.
        InactiveUserException: If the account is deactivated or blocked.
    """
    payload = decode_access_token(token)

    user = db.query(db_models.User).filter(db_models.User.id == payload.user_id).first()
    if user is None:
        raise AuthenticationException("Could not validate credentials")

    if token_predates_password_change(user, payload.issued_at):
        raise AuthenticationException(
            "Password recently changed. Please log in again."
        )

    if not user.is_active or user.is_blocked:
        raise InactiveUserException("Account has been deactivated")

    return user


def require_roles(*roles: db_models.UserRole) -> Callable:
    """
    Build a dependency that admits only the given roles.

    Raises:
        InsufficientPermissionsException: If the user's role is not allowed.
    """

    async def dependency(
        current_user: db_models.User = Depends(get_current_user),
    ) -> db_models.User:
        if current_user.role not in roles:
            raise InsufficientPermissionsException("Not enough permissions")
        return current_user

    return dependency


get_admin_user = require_roles(db_models.UserRole.ADMIN)
get_staff_user = require_roles(db_models.UserRole.WORKER, db_models.UserRole.ADMIN)
