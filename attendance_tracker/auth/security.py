import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, List

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..models.models import User


ADMIN_ROLE = "admin"
EMPLOYEE_ROLE = "employee"

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
http_bearer = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    # Unknown or malformed hashes count as a mismatch
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False


def _issue(sub: str, token_type: str, ttl_seconds: int, claims: Optional[dict] = None) -> str:
    issued = datetime.now(tz=timezone.utc)
    payload = dict(claims or {})
    payload.update(
        sub=sub,
        type=token_type,
        iat=int(issued.timestamp()),
        exp=int((issued + timedelta(seconds=ttl_seconds)).timestamp()),
        jti=uuid.uuid4().hex,
    )
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: str, roles: Optional[List[str]] = None) -> str:
    return _issue(user_id, ACCESS_TOKEN, settings.jwt_ttl_seconds, {"roles": sorted(roles or [])})


def create_refresh_token(user_id: str) -> str:
    return _issue(user_id, REFRESH_TOKEN, settings.refresh_ttl_seconds)


def decode_token(token: str, expected_type: str = ACCESS_TOKEN) -> dict:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid token")
    if payload.get("type") != expected_type:
        raise _unauthorized("Invalid token")
    return payload


def load_active_user(db: Session, subject) -> User:
    try:
        user_uuid = uuid.UUID(str(subject))
    except ValueError:
        raise _unauthorized("Invalid subject")
    user = db.get(User, user_uuid)
    if user is None or not user.is_active:
        raise _unauthorized("User not active")
    return user


def user_from_token(token: str, db: Session) -> User:
    """Resolve an access token (header or websocket query) to an active user."""
    return load_active_user(db, decode_token(token).get("sub"))


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
) -> User:
    if creds is None:
        raise _unauthorized("Not authenticated")
    return user_from_token(creds.credentials, db)


def role_names(user: User) -> set:
    return {(r.name or "").lower() for r in user.roles}


def is_admin(user: User) -> bool:
    return ADMIN_ROLE in role_names(user)


def require_roles(*required_roles: str):
    def _dep(user: User = Depends(get_current_user)):
        if not set(required_roles).issubset(role_names(user)):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return user

    return _dep
