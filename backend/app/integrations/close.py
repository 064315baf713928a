"""
Minimal Close CRM client: only what is needed to verify an API key.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

import requests

from app.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_IDENTITY_LABEL = "Verified User"
INVALID_KEY_ERROR = "Invalid API Key"
TIMEOUT_ERROR = "Timed out"


class CloseError(Exception):
    """Raised when Close rejects a request or cannot be reached."""


class CloseTimeout(CloseError):
    """Raised when Close does not answer within the configured timeout."""


@dataclass(frozen=True)
class CredentialCheck:
    valid: bool
    user: str | None = None
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        if self.valid:
            return {"valid": True, "user": self.user}
        return {"valid": False, "error": self.error}


class CloseClient:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        http=None,
    ) -> None:
        self.base_url = (base_url or settings.CLOSE_API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.CLOSE_API_TIMEOUT_SECONDS
        self._http = http or requests

    def _request(self, api_key: str, method: str, path: str, **kwargs) -> dict[str, Any]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }
        url = f"{self.base_url}{path}"
        try:
            resp = self._http.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.Timeout as exc:
            logger.warning("close.request_failed", extra={"path": path, "error_code": "timeout"})
            raise CloseTimeout("Close API timed out") from exc
        except requests.RequestException as exc:
            logger.warning("close.request_failed", extra={"path": path, "error_code": "connection"})
            raise CloseError("Close API unreachable") from exc
        if resp.status_code >= 400:
            logger.info("close.request_failed", extra={"path": path, "status_code": resp.status_code})
            raise CloseError(f"Close API returned status {resp.status_code}")
        try:
            return resp.json()
        except ValueError as exc:
            raise CloseError("Close API returned an invalid body") from exc

    def get_me(self, api_key: str) -> dict[str, Any]:
        return self._request(api_key, "GET", "/me/")

    def verify_api_key(self, api_key: str) -> CredentialCheck:
        try:
            me = self.get_me(api_key)
        except CloseTimeout:
            return CredentialCheck(valid=False, error=TIMEOUT_ERROR)
        except CloseError:
            return CredentialCheck(valid=False, error=INVALID_KEY_ERROR)
        if not isinstance(me, dict):
            me = {}
        return CredentialCheck(valid=True, user=me.get("first_name") or DEFAULT_IDENTITY_LABEL)
