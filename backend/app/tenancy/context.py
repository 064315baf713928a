"""
The identity every authorization decision is made against.
"""

from dataclasses import dataclass

from app.models.enums import RoleEnum


@dataclass(frozen=True)
class AuthenticatedActor:
    """
    Produced once per request by the authentication dependency from
    persisted user state. Client-supplied organization ids never reach it.
    """

    id: int
    role: RoleEnum
    organization_id: int

    @classmethod
    def from_user(cls, user) -> "AuthenticatedActor":
        return cls(id=user.id, role=RoleEnum(user.role), organization_id=user.organization_id)
