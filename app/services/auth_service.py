"""Password hashing, bearer tokens and the request's authenticated user."""
from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional, Tuple
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import UserRole
from ..database import get_session
from ..models import User
from ..schemas import RegisterRequest
from ..security.secrets import MissingSecretError, require_secret

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)
_passwords = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
TOKEN_TTL = timedelta(minutes=int(os.getenv("JWT_EXPIRES_MINUTES", "1440")))


@lru_cache(maxsize=1)
def _signing_key() -> str:
    try:
        return require_secret("JWT_SECRET_KEY")
    except MissingSecretError as exc:
        raise RuntimeError(str(exc)) from exc


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def hash_password(password: str) -> str:
    return _passwords.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return _passwords.verify(password, hashed_password)
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


def create_access_token(subject: UUID, *, ttl: Optional[timedelta] = None) -> str:
    """Sign a JWT whose ``sub`` claim is the user's id."""

    issued = datetime.now(timezone.utc)
    claims = {"sub": str(subject), "iat": issued, "exp": issued + (ttl or TOKEN_TTL)}
    return jwt.encode(claims, _signing_key(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> UUID:
    try:
        claims = jwt.decode(token, _signing_key(), algorithms=[ALGORITHM])
        return UUID(claims["sub"])
    except JWTError as exc:
        raise _unauthorized("Invalid token") from exc
    except (KeyError, TypeError, ValueError) as exc:
        raise _unauthorized("Invalid token payload") from exc


def register_user(db: Session, payload: RegisterRequest) -> Tuple[User, str]:
    """Create the account described by ``payload`` and issue its first token."""

    email = str(payload.email) if payload.email else None
    criteria = [User.username == payload.username]
    if email:
        criteria.append(User.email == email)
    clash = db.scalar(select(User).where(or_(*criteria)))
    if clash is not None:
        detail = "Username already in use" if clash.username == payload.username else "Email already registered"
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)

    user = User(
        username=payload.username,
        email=email,
        full_name=payload.full_name.strip() if payload.full_name else None,
        phone=payload.phone,
        hashed_password=hash_password(payload.password),
        role=payload.role,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Account already exists") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to register user %s", payload.username)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to register user") from exc

    logger.info("Registered %s user %s", user.role, user.id)
    return user, create_access_token(user.id)


def authenticate_user(db: Session, username: str, password: str) -> Optional[User]:
    user = db.scalar(select(User).where(User.username == username))
    if user is None or not verify_password(password, user.hashed_password):
        return None
    return user


def _record_activity(db: Session, user: User) -> None:
    user.last_active_at = datetime.now(timezone.utc)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Could not record activity for user %s", user.id)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: Session = Depends(get_session),
) -> User:
    """Resolve the bearer token into a :class:`User` or fail with 401."""

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Missing bearer token")

    user = db.get(User, decode_access_token(credentials.credentials))
    if user is None:
        raise _unauthorized("Invalid token")

    _record_activity(db, user)
    return user


def require_roles(*allowed_roles: str):
    allowed = {role.lower() for role in allowed_roles if role}

    async def _resolver(user: User = Depends(get_current_user)) -> User:
        if allowed and (user.role or UserRole.CLIENT).lower() not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return user

    return _resolver


def require_staff():
    return require_roles(*(role.value for role in UserRole if role is not UserRole.CLIENT))


__all__ = [
    "authenticate_user",
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    "hash_password",
    "register_user",
    "require_roles",
    "require_staff",
    "verify_password",
]
