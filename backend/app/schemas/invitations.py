from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.enums import RoleEnum


class InviteCreate(BaseModel):
    email: EmailStr
    role: RoleEnum = RoleEnum.MEMBER

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class InviteCreatedResponse(BaseModel):
    success: bool = True
    id: int
    email: str
    role: RoleEnum
    expires_at: datetime
    link: str


class InviteValidation(BaseModel):
    valid: bool
    email: Optional[str] = None
    organization_name: Optional[str] = None
    role: Optional[RoleEnum] = None


class InviteAcceptRequest(BaseModel):
    token: str = Field(min_length=8)
    name: str = Field(min_length=1, max_length=200)
    password: str = Field(min_length=1, max_length=256)
    email: Optional[str] = None

    @field_validator("token", "name")
    @classmethod
    def strip_whitespace(cls, value: str) -> str:
        return value.strip()


class AcceptedUser(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    role: RoleEnum
    organization_id: int

    model_config = {"from_attributes": True}


class InviteAcceptResponse(BaseModel):
    success: bool = True
    user: AcceptedUser
    access_token: str
