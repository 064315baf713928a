from enum import Enum

# Stored as strings with DB check constraints (native enums disabled for easier evolution).


class RoleEnum(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


# Roles an invitation or a role change may grant. Ownership is never
# handed out through either path.
ASSIGNABLE_ROLES = frozenset({RoleEnum.ADMIN, RoleEnum.MEMBER})


class AuditActionEnum(str, Enum):
    CREATE_INVITE = "CREATE_INVITE"
    ACCEPT_INVITE = "ACCEPT_INVITE"
    REVOKE_INVITE = "REVOKE_INVITE"
    REMOVE_MEMBER = "REMOVE_MEMBER"
    CHANGE_ROLE = "CHANGE_ROLE"
    VIEW_TEAM = "VIEW_TEAM"
    CRM_CREDENTIALS_SAVED = "CRM_CREDENTIALS_SAVED"
    ACCESS_DENIED = "ACCESS_DENIED"
    LOGIN = "LOGIN"


class IntegrationProviderEnum(str, Enum):
    CLOSE = "close"
