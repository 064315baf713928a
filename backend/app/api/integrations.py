from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_actor
from app.api.errors import unwrap
from app.core.cache import TTLCache
from app.core.db import get_db
from app.crud.credentials import check_credential, credential_debug, credential_status, save_credential
from app.integrations.close import CloseClient
from app.models.enums import IntegrationProviderEnum, RoleEnum
from app.schemas.credentials import (
    CredentialDebugResponse,
    CredentialSave,
    CredentialSavedResponse,
    CredentialStatusResponse,
    CredentialTest,
    CredentialTestResponse,
)
from app.tenancy.context import AuthenticatedActor
from app.tenancy.dependencies import require_roles


router = APIRouter(prefix="/api/integrations", tags=["integrations"])

CLOSE = IntegrationProviderEnum.CLOSE


def get_close_client() -> CloseClient:
    return CloseClient()


def get_credential_test_cache(request: Request) -> TTLCache:
    return request.app.state.credential_test_cache


@router.post("/close/save", response_model=CredentialSavedResponse)
def save_close_credentials(
    payload: CredentialSave,
    request: Request,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(require_roles([RoleEnum.OWNER, RoleEnum.ADMIN])),
):
    unwrap(save_credential(db, actor, CLOSE, payload.api_key, request=request))
    return CredentialSavedResponse()


@router.post("/close/test", response_model=CredentialTestResponse)
def verify_close_credentials(
    payload: CredentialTest,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(require_roles([RoleEnum.OWNER, RoleEnum.ADMIN])),
    client: CloseClient = Depends(get_close_client),
    cache: TTLCache = Depends(get_credential_test_cache),
):
    check = unwrap(check_credential(db, actor, payload.api_key, client=client, cache=cache))
    return CredentialTestResponse(**check.to_payload())


@router.get("/close/status", response_model=CredentialStatusResponse)
def close_status(
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(get_current_actor),
):
    return CredentialStatusResponse(**unwrap(credential_status(db, actor, CLOSE)))


@router.get("/close/debug", response_model=CredentialDebugResponse)
def close_debug(
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(require_roles([RoleEnum.OWNER, RoleEnum.ADMIN])),
):
    return CredentialDebugResponse(**unwrap(credential_debug(db, actor, CLOSE)))
