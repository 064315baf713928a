# Session endpoints: password login, logout and "who am I".
# Tokens are JWTs carrying only the user id; they are returned in the body
# and also set as an httpOnly cookie for the web client.

import logging

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user
from app.core.config import settings
from app.core.db import get_db, transaction
from app.core.errors import Err, ErrorKind, OperationFailed
from app.core.security import create_session_token, verify_password
from app.crud.audit import record_audit
from app.crud.users import get_user_by_email
from app.models.enums import AuditActionEnum
from app.models.users import User
from app.schemas.auth import LoginRequest, MeResponse, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    user = get_user_by_email(db, payload.email)
    if not user or not user.active or not verify_password(payload.password, user.password_hash):
        logger.info("auth.login_failed", extra={"request_id": getattr(request.state, "request_id", None)})
        raise OperationFailed(Err(ErrorKind.UNAUTHORIZED, "Incorrect email or password"))
    token = create_session_token(user.id)
    with transaction(db):
        record_audit(db, user.organization_id, user.id, AuditActionEnum.LOGIN, request=request)
    set_session_cookie(response, token)
    return TokenResponse(access_token=token)


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.AUTH_COOKIE_NAME)
    return {"detail": "Logged out"}


@router.get("/api/me", response_model=MeResponse)
def read_me(current_user: User = Depends(get_current_user)):
    return MeResponse(
        id=current_user.id,
        email=current_user.email,
        name=current_user.name,
        role=current_user.role,
        organization_id=current_user.organization_id,
        organization_name=current_user.organization.name if current_user.organization else None,
    )
