from .audit import list_audit_logs, record_audit
from .organizations import create_organization, provision_user
from .users import create_user, get_user, get_user_by_email
from .invitations import (
    accept_invitation,
    create_invitation,
    list_pending_invitations,
    revoke_invitation,
    validate_invitation,
)
from .team import change_role, list_roster, remove_member
from .credentials import check_credential, credential_debug, credential_status, save_credential
