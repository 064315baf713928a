# Per-organization third-party credentials. API keys are sealed by the
# credential vault before they touch the session and are only opened
# for internal collaborators; plaintext never reaches logs or responses.

import hashlib
import logging
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.cache import TTLCache
from app.core.crypto import CredentialVault, CryptoError, EncryptedPayload, get_vault
from app.core.db import transaction
from app.core.errors import Err, ErrorKind, Ok, Result
from app.core.metrics import record_credential_check
from app.crud.audit import record_audit
from app.integrations.close import TIMEOUT_ERROR, CloseClient, CredentialCheck
from app.models.credentials import EncryptedCredential
from app.models.enums import AuditActionEnum, IntegrationProviderEnum
from app.tenancy.authorization import ANY_MEMBER, OWNER_OR_ADMIN, authorize
from app.tenancy.context import AuthenticatedActor
from app.tenancy.scoping import scoped_query

logger = logging.getLogger(__name__)


def _normalize_provider(provider: IntegrationProviderEnum | str) -> IntegrationProviderEnum | None:
    if isinstance(provider, IntegrationProviderEnum):
        return provider
    try:
        return IntegrationProviderEnum(str(provider).strip().lower())
    except ValueError:
        return None


def get_credential(
    db: Session,
    organization_id: int,
    provider: IntegrationProviderEnum,
    *,
    for_update: bool = False,
) -> EncryptedCredential | None:
    query = scoped_query(db, EncryptedCredential, organization_id).filter(
        EncryptedCredential.provider == provider.value
    )
    if for_update:
        query = query.with_for_update()
    return query.first()


def _upsert(
    db: Session,
    organization_id: int,
    provider: IntegrationProviderEnum,
    payload: EncryptedPayload,
) -> EncryptedCredential:
    credential = get_credential(db, organization_id, provider, for_update=True)
    if credential is None:
        credential = EncryptedCredential(organization_id=organization_id, provider=provider.value)
        db.add(credential)
    credential.ciphertext = payload.ciphertext
    credential.iv = payload.iv
    credential.auth_tag = payload.auth_tag
    db.flush()
    return credential


def save_credential(
    db: Session,
    actor: AuthenticatedActor,
    provider: IntegrationProviderEnum | str,
    api_key: str | None,
    *,
    vault: CredentialVault | None = None,
    request=None,
) -> Result[EncryptedCredential]:
    gate = authorize(actor, OWNER_OR_ADMIN)
    if not gate.ok:
        return gate
    resolved_provider = _normalize_provider(provider)
    if resolved_provider is None:
        return Err(ErrorKind.VALIDATION, "Unsupported integration provider")
    if not api_key or not api_key.strip():
        return Err(ErrorKind.VALIDATION, "API key is required")
    try:
        payload = (vault or get_vault()).seal(api_key.strip())
    except CryptoError:
        logger.error("vault.encrypt_failed", extra={"organization_id": actor.organization_id})
        return Err(ErrorKind.CRYPTO)

    # Two writers inserting the first credential race on the unique
    # (organization_id, provider) constraint; the loser retries as an update.
    for attempt in range(2):
        try:
            with transaction(db):
                credential = _upsert(db, actor.organization_id, resolved_provider, payload)
                record_audit(
                    db,
                    actor.organization_id,
                    actor.id,
                    AuditActionEnum.CRM_CREDENTIALS_SAVED,
                    {"provider": resolved_provider.value},
                    request=request,
                )
            break
        except IntegrityError:
            if attempt:
                raise
    db.refresh(credential)
    return Ok(credential)


def credential_status(
    db: Session,
    actor: AuthenticatedActor,
    provider: IntegrationProviderEnum | str,
) -> Result[dict[str, Any]]:
    gate = authorize(actor, ANY_MEMBER)
    if not gate.ok:
        return gate
    resolved_provider = _normalize_provider(provider)
    if resolved_provider is None:
        return Err(ErrorKind.VALIDATION, "Unsupported integration provider")
    credential = get_credential(db, actor.organization_id, resolved_provider)
    if credential is None:
        return Ok({"connected": False, "last_updated": None})
    return Ok({"connected": True, "last_updated": credential.updated_at})


def credential_debug(
    db: Session,
    actor: AuthenticatedActor,
    provider: IntegrationProviderEnum | str,
) -> Result[dict[str, Any]]:
    gate = authorize(actor, OWNER_OR_ADMIN)
    if not gate.ok:
        return gate
    resolved_provider = _normalize_provider(provider)
    if resolved_provider is None:
        return Err(ErrorKind.VALIDATION, "Unsupported integration provider")
    stored = get_credential(db, actor.organization_id, resolved_provider) is not None
    return Ok({"stored": stored, "provider": resolved_provider.value})


def load_credential_plaintext(
    db: Session,
    organization_id: int,
    provider: IntegrationProviderEnum | str,
    *,
    vault: CredentialVault | None = None,
) -> str | None:
    resolved_provider = _normalize_provider(provider)
    if resolved_provider is None:
        return None
    credential = get_credential(db, organization_id, resolved_provider)
    if credential is None:
        return None
    payload = EncryptedPayload(iv=credential.iv, auth_tag=credential.auth_tag, ciphertext=credential.ciphertext)
    try:
        return (vault or get_vault()).open(payload)
    except CryptoError:
        logger.error(
            "vault.decrypt_failed",
            extra={"organization_id": organization_id, "provider": resolved_provider.value},
        )
        raise


def _cache_key(api_key: str) -> str:
    return "close:" + hashlib.sha256(api_key.encode("utf-8")).hexdigest()


def check_credential(
    db: Session,
    actor: AuthenticatedActor,
    api_key: str | None,
    *,
    client: CloseClient,
    cache: TTLCache | None = None,
    vault: CredentialVault | None = None,
) -> Result[CredentialCheck]:
    """
    Check a Close API key. With no key, the organization's stored key is used.

    Only successful checks are cached, keyed by a digest of the key.
    """
    gate = authorize(actor, OWNER_OR_ADMIN)
    if not gate.ok:
        return gate
    key = (api_key or "").strip()
    if not key:
        try:
            stored = load_credential_plaintext(db, actor.organization_id, IntegrationProviderEnum.CLOSE, vault=vault)
            key = stored or ""
        except CryptoError:
            return Err(ErrorKind.CRYPTO)
    if not key:
        return Ok(CredentialCheck(valid=False, error="API key is required"))
    cache_key = _cache_key(key)
    if cache is not None:
        cached = cache.get(cache_key)
        if cached is not None:
            return Ok(cached)
    check = client.verify_api_key(key)
    if check.valid:
        outcome = "valid"
    else:
        outcome = "timeout" if check.error == TIMEOUT_ERROR else "invalid"
    record_credential_check(IntegrationProviderEnum.CLOSE.value, outcome)
    if check.valid and cache is not None:
        cache.set(cache_key, check)
    return Ok(check)
