from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.enums import RoleEnum


class SeedUserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)
    name: Optional[str] = None
    organization_name: str = Field(min_length=1)
    role: RoleEnum = RoleEnum.MEMBER

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class SeedUserResponse(BaseModel):
    success: bool = True
    user_id: int
    organization_id: int
    role: RoleEnum
