# Invitation tokens are "inv_{invitation_id}_{secret}". Only a keyed
# digest of the secret is stored, so a database leak does not leak
# usable links, and the id prefix gives an indexed lookup.

import hashlib
import hmac
import secrets

from app.core.config import settings

INVITE_TOKEN_PREFIX = "inv"


def generate_token() -> str:
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    return hmac.new(
        settings.SECRET_KEY.encode("utf-8"),
        token.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def verify_token(token: str, token_hash: str) -> bool:
    if not token or not token_hash:
        return False
    return hmac.compare_digest(hash_token(token), token_hash)


def format_invite_token(invitation_id: int, secret: str) -> str:
    return f"{INVITE_TOKEN_PREFIX}_{invitation_id}_{secret}"


def parse_invite_token(token: str | None) -> tuple[int | None, str | None]:
    if not token or not token.startswith(f"{INVITE_TOKEN_PREFIX}_"):
        return None, None
    parts = token.strip().split("_", 2)
    if len(parts) != 3:
        return None, None
    _, invitation_id, secret = parts
    if not invitation_id.isdigit() or not secret:
        return None, None
    return int(invitation_id), secret
