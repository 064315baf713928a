# Authentication dependencies. This is the one place a request's identity
# is established: the session token only carries the user id, and role and
# organization are always read back from the database.

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import get_db
from app.core.errors import Err, ErrorKind, OperationFailed
from app.core.security import session_user_id
from app.crud.users import get_user
from app.models.users import User
from app.tenancy.context import AuthenticatedActor

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login", auto_error=False)


def _resolve_token(request: Request, bearer: Optional[str]) -> Optional[str]:
    if bearer:
        return bearer
    return request.cookies.get(settings.AUTH_COOKIE_NAME)


def get_optional_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    raw_token = _resolve_token(request, token)
    if not raw_token:
        return None
    user_id = session_user_id(raw_token)
    if user_id is None:
        return None
    user = get_user(db, user_id)
    if user is None or not user.active:
        return None
    request.state.actor = AuthenticatedActor.from_user(user)
    return user


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise OperationFailed(Err(ErrorKind.UNAUTHORIZED))
    return user


def get_current_actor(user: User = Depends(get_current_user)) -> AuthenticatedActor:
    return AuthenticatedActor.from_user(user)
