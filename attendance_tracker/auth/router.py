from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import User
from ..schemas.auth import LoginRequest, TokenResponse, MeResponse
from .security import (
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_current_user,
    load_active_user,
    role_names,
    verify_password,
)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = structlog.get_logger(__name__)


def _token_pair(user: User) -> TokenResponse:
    user_id = str(user.id)
    return TokenResponse(
        access_token=create_access_token(user_id, roles=list(role_names(user))),
        refresh_token=create_refresh_token(user_id),
    )


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    """Username or email plus password."""
    identifier = req.identifier.strip()
    user = db.query(User).filter(or_(User.username == identifier, User.email == identifier)).first()
    if user is None or not user.is_active or not verify_password(req.password, user.password_hash):
        logger.info("login_failed", identifier=identifier)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    logger.info("login_succeeded", user_id=str(user.id))
    return _token_pair(user)


@router.post("/refresh", response_model=TokenResponse)
def refresh(token: str, db: Session = Depends(get_db)):
    payload = decode_token(token, expected_type=REFRESH_TOKEN)
    return _token_pair(load_active_user(db, payload.get("sub")))


@router.get("/me", response_model=MeResponse)
def me(user: User = Depends(get_current_user)):
    return MeResponse(
        id=str(user.id),
        username=user.username,
        email=user.email,
        full_name=user.full_name,
        nik=user.nik,
        roles=sorted(role_names(user)),
    )
