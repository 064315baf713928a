import os
from types import SimpleNamespace

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("INTEGRATION_ENCRYPTION_KEY", "test-vault-secret")

from app.core.errors import ErrorKind  # noqa: E402
from app.models.enums import RoleEnum  # noqa: E402
from app.tenancy.authorization import ANY_MEMBER, OWNER_OR_ADMIN, authorize  # noqa: E402
from app.tenancy.context import AuthenticatedActor  # noqa: E402
from app.tenancy.permissions import can_change_role, can_remove, can_view_roster, normalize_role  # noqa: E402


def _person(user_id, role):
    return SimpleNamespace(id=user_id, role=role)


OWNER = _person(1, RoleEnum.OWNER)
ADMIN = _person(2, RoleEnum.ADMIN)
OTHER_ADMIN = _person(3, RoleEnum.ADMIN)
MEMBER = _person(4, RoleEnum.MEMBER)
OTHER_MEMBER = _person(5, RoleEnum.MEMBER)


def test_normalize_role_accepts_values_and_rejects_unknown():
    assert normalize_role("admin") == RoleEnum.ADMIN
    assert normalize_role(RoleEnum.OWNER) == RoleEnum.OWNER
    assert normalize_role("superuser") is None
    assert normalize_role(None) is None


def test_can_remove_matrix():
    assert can_remove(OWNER, ADMIN)
    assert can_remove(OWNER, MEMBER)
    assert can_remove(ADMIN, MEMBER)
    assert not can_remove(ADMIN, OWNER)
    assert not can_remove(ADMIN, OTHER_ADMIN)
    assert not can_remove(MEMBER, OTHER_MEMBER)
    assert not can_remove(MEMBER, OWNER)


def test_nobody_removes_themselves():
    for person in (OWNER, ADMIN, MEMBER):
        assert not can_remove(person, person)


def test_can_change_role_is_owner_only():
    assert can_change_role(OWNER, MEMBER, RoleEnum.ADMIN)
    assert can_change_role(OWNER, ADMIN, "member")
    assert not can_change_role(ADMIN, MEMBER, RoleEnum.ADMIN)
    assert not can_change_role(MEMBER, OTHER_MEMBER, RoleEnum.ADMIN)


def test_can_change_role_never_grants_owner_or_touches_self():
    assert not can_change_role(OWNER, ADMIN, RoleEnum.OWNER)
    assert not can_change_role(OWNER, OWNER, RoleEnum.ADMIN)
    assert not can_change_role(OWNER, MEMBER, "superuser")


def test_every_role_can_view_roster():
    for person in (OWNER, ADMIN, MEMBER):
        assert can_view_roster(person)
    assert not can_view_roster(None)


def test_authorize_missing_identity_is_unauthorized():
    result = authorize(None, OWNER_OR_ADMIN)
    assert not result.ok
    assert result.kind == ErrorKind.UNAUTHORIZED
    assert result.status_code == 401


def test_authorize_role_outside_set_is_forbidden():
    actor = AuthenticatedActor(id=4, role=RoleEnum.MEMBER, organization_id=1)
    result = authorize(actor, OWNER_OR_ADMIN)
    assert result.kind == ErrorKind.FORBIDDEN
    assert result.to_payload() == {"code": "forbidden", "message": "Insufficient permissions"}


def test_authorize_admits_listed_roles_and_any_member():
    admin = AuthenticatedActor(id=2, role=RoleEnum.ADMIN, organization_id=1)
    member = AuthenticatedActor(id=4, role=RoleEnum.MEMBER, organization_id=1)
    assert authorize(admin, OWNER_OR_ADMIN).value is admin
    assert authorize(member, ANY_MEMBER).ok
    assert authorize(member, ["member"]).ok


def test_authorize_matches_roles_exactly():
    owner = AuthenticatedActor(id=1, role=RoleEnum.OWNER, organization_id=1)
    assert authorize(owner, [RoleEnum.ADMIN]).kind == ErrorKind.FORBIDDEN
