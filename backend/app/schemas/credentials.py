from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class CredentialSave(BaseModel):
    api_key: Optional[str] = None


class CredentialTest(BaseModel):
    api_key: Optional[str] = None


class CredentialSavedResponse(BaseModel):
    status: str = "saved"


class CredentialTestResponse(BaseModel):
    valid: bool
    user: Optional[str] = None
    error: Optional[str] = None


class CredentialStatusResponse(BaseModel):
    connected: bool
    last_updated: Optional[datetime] = None


class CredentialDebugResponse(BaseModel):
    stored: bool
    provider: str
