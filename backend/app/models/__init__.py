from .organizations import Organization
from .users import User
from .invitations import Invitation
from .credentials import EncryptedCredential
from .audit_logs import AuditLog
