from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.enums import RoleEnum


class TeamMember(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    role: RoleEnum
    active: bool
    joined_at: datetime


class PendingInvite(BaseModel):
    id: int
    email: str
    role: RoleEnum
    created_at: datetime
    expires_at: datetime

    model_config = {"from_attributes": True}


class TeamRoster(BaseModel):
    members: list[TeamMember]
    invites: list[PendingInvite]


class RoleUpdate(BaseModel):
    # Kept as a plain string so unknown roles reach the service and come
    # back as invalid_role rather than a schema error.
    role: str = Field(min_length=1)


class MemberRemovedResponse(BaseModel):
    success: bool = True
    user_id: int


class RoleChangedResponse(BaseModel):
    success: bool = True
    user_id: int
    role: RoleEnum


class InviteRevokedResponse(BaseModel):
    success: bool = True
    email: str
