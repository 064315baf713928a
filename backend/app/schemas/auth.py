from pydantic import BaseModel, EmailStr, Field

from app.models.enums import RoleEnum


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class MeResponse(BaseModel):
    id: int
    email: str
    name: str | None = None
    role: RoleEnum
    organization_id: int
    organization_name: str | None = None
