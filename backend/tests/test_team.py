import os

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("INTEGRATION_ENCRYPTION_KEY", "test-vault-secret")

from app.main import app  # noqa: E402
import app.core.db as db_module  # noqa: E402
from app.core.db import Base  # noqa: E402
from app.core.security import create_session_token  # noqa: E402
from app.crud.invitations import create_invitation  # noqa: E402
from app.crud.users import count_owners  # noqa: E402
from app.models.audit_logs import AuditLog  # noqa: E402
from app.models.enums import AuditActionEnum, RoleEnum  # noqa: E402
from app.models.organizations import Organization  # noqa: E402
from app.models.users import User  # noqa: E402
from app.tenancy.context import AuthenticatedActor  # noqa: E402
from tests.factories import make_team, make_user  # noqa: E402


client = TestClient(app)


def _setup_db(tmp_path, monkeypatch):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'team.db'}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    monkeypatch.setattr(db_module, "engine", engine)
    monkeypatch.setattr(db_module, "SessionLocal", SessionLocal)
    Base.metadata.create_all(bind=engine)
    client.cookies.clear()
    return SessionLocal


def _auth(user_id: int) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_session_token(user_id)}"}


def _ids(*users):
    return [user.id for user in users]


def _assert_single_owner(SessionLocal):
    with SessionLocal() as db:
        for organization in db.query(Organization).all():
            assert count_owners(db, organization.id) == 1


def test_roster_lists_members_owner_first_with_pending_invites(tmp_path, monkeypatch):
    SessionLocal = _setup_db(tmp_path, monkeypatch)
    with SessionLocal() as db:
        organization, owner, admin, member = make_team(db, name="Acme")
        late_admin = make_user(db, organization=organization, role=RoleEnum.ADMIN)
        owner_id, admin_id, member_id, late_admin_id = _ids(owner, admin, member, late_admin)
        create_invitation(db, AuthenticatedActor.from_user(owner), "pending@example.com", RoleEnum.MEMBER)

    resp = client.get("/api/team", headers=_auth(member_id))
    assert resp.status_code == 200
    payload = resp.json()
    assert [item["id"] for item in payload["members"]] == [owner_id, admin_id, late_admin_id, member_id]
    assert payload["members"][0]["role"] == "owner"
    assert [invite["email"] for invite in payload["invites"]] == ["pending@example.com"]

    with SessionLocal() as db:
        views = db.query(AuditLog).filter(AuditLog.action == AuditActionEnum.VIEW_TEAM).all()
        assert [log.user_id for log in views] == [member_id]


def test_roster_requires_authentication(tmp_path, monkeypatch):
    _setup_db(tmp_path, monkeypatch)
    resp = client.get("/api/team")
    assert resp.status_code == 401
    assert resp.json()["code"] == "unauthorized"
    assert resp.headers["X-Error-Code"] == "unauthorized"


def test_roster_never_includes_other_organizations(tmp_path, monkeypatch):
    SessionLocal = _setup_db(tmp_path, monkeypatch)
    with SessionLocal() as db:
        _org_a, owner_a, _admin_a, _member_a = make_team(db, name="A")
        org_b, owner_b, _admin_b, _member_b = make_team(db, name="B")
        create_invitation(db, AuthenticatedActor.from_user(owner_b), "b-only@example.com")
        owner_a_id = owner_a.id
        org_b_user_ids = {user.id for user in db.query(User).filter(User.organization_id == org_b.id)}

    resp = client.get("/api/team", headers=_auth(owner_a_id))
    assert resp.status_code == 200
    payload = resp.json()
    assert not {item["id"] for item in payload["members"]} & org_b_user_ids
    assert payload["invites"] == []


def test_admin_cannot_remove_owner(tmp_path, monkeypatch):
    SessionLocal = _setup_db(tmp_path, monkeypatch)
    with SessionLocal() as db:
        _org, owner, admin, _member = make_team(db)
        owner_id, admin_id = owner.id, admin.id

    resp = client.delete(f"/api/team/members/{owner_id}", headers=_auth(admin_id))
    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden"
    with SessionLocal() as db:
        assert db.get(User, owner_id) is not None
    _assert_single_owner(SessionLocal)


def test_admin_cannot_remove_admin_but_owner_can(tmp_path, monkeypatch):
    SessionLocal = _setup_db(tmp_path, monkeypatch)
    with SessionLocal() as db:
        organization, owner, admin_a, _member = make_team(db)
        admin_b = make_user(db, organization=organization, role=RoleEnum.ADMIN)
        owner_id, admin_a_id, admin_b_id = owner.id, admin_a.id, admin_b.id

    denied = client.delete(f"/api/team/members/{admin_b_id}", headers=_auth(admin_a_id))
    assert denied.status_code == 403

    allowed = client.delete(f"/api/team/members/{admin_b_id}", headers=_auth(owner_id))
    assert allowed.status_code == 200
    assert allowed.json() == {"success": True, "user_id": admin_b_id}

    with SessionLocal() as db:
        assert db.get(User, admin_b_id) is None
        removal = db.query(AuditLog).filter(AuditLog.action == AuditActionEnum.REMOVE_MEMBER).one()
        assert removal.user_id == owner_id
        assert removal.details["target_user_id"] == admin_b_id


def test_admin_can_remove_member(tmp_path, monkeypatch):
    SessionLocal = _setup_db(tmp_path, monkeypatch)
    with SessionLocal() as db:
        _org, _owner, admin, member = make_team(db)
        admin_id, member_id = admin.id, member.id

    resp = client.delete(f"/api/team/members/{member_id}", headers=_auth(admin_id))
    assert resp.status_code == 200
    with SessionLocal() as db:
        assert db.get(User, member_id) is None


def test_member_cannot_remove_anyone(tmp_path, monkeypatch):
    SessionLocal = _setup_db(tmp_path, monkeypatch)
    with SessionLocal() as db:
        organization, _owner, _admin, member = make_team(db)
        other_member = make_user(db, organization=organization)
        member_id, other_id = member.id, other_member.id

    resp = client.delete(f"/api/team/members/{other_id}", headers=_auth(member_id))
    assert resp.status_code == 403


def test_self_removal_is_rejected(tmp_path, monkeypatch):
    SessionLocal = _setup_db(tmp_path, monkeypatch)
    with SessionLocal() as db:
        _org, _owner, admin, _member = make_team(db)
        admin_id = admin.id

    resp = client.delete(f"/api/team/members/{admin_id}", headers=_auth(admin_id))
    assert resp.status_code == 400
    assert resp.json()["code"] == "self_removal"


def test_cross_tenant_removal_looks_like_not_found(tmp_path, monkeypatch):
    SessionLocal = _setup_db(tmp_path, monkeypatch)
    with SessionLocal() as db:
        _org_a, owner_a, _admin_a, member_a = make_team(db, name="A")
        _org_b, _owner_b, _admin_b, member_b = make_team(db, name="B")
        owner_a_id, member_a_id, member_b_id = owner_a.id, member_a.id, member_b.id

    from_member = client.delete(f"/api/team/members/{member_b_id}", headers=_auth(member_a_id))
    assert from_member.status_code == 404
    from_owner = client.delete(f"/api/team/members/{member_b_id}", headers=_auth(owner_a_id))
    assert from_owner.status_code == 404
    missing = client.delete("/api/team/members/999999", headers=_auth(owner_a_id))
    assert missing.status_code == 404
    assert from_owner.json() == missing.json()

    with SessionLocal() as db:
        assert db.get(User, member_b_id) is not None


def test_removing_member_keeps_their_audit_history(tmp_path, monkeypatch):
    SessionLocal = _setup_db(tmp_path, monkeypatch)
    with SessionLocal() as db:
        _org, owner, _admin, member = make_team(db)
        owner_id, member_id = owner.id, member.id

    assert client.get("/api/team", headers=_auth(member_id)).status_code == 200
    assert client.delete(f"/api/team/members/{member_id}", headers=_auth(owner_id)).status_code == 200

    with SessionLocal() as db:
        view = db.query(AuditLog).filter(AuditLog.action == AuditActionEnum.VIEW_TEAM).one()
        assert view.user_id is None

    resp = client.get("/api/team", headers=_auth(member_id))
    assert resp.status_code == 401


def test_owner_promotes_and_demotes(tmp_path, monkeypatch):
    SessionLocal = _setup_db(tmp_path, monkeypatch)
    with SessionLocal() as db:
        _org, owner, _admin, member = make_team(db)
        owner_id, member_id = owner.id, member.id

    promote = client.patch(f"/api/team/members/{member_id}/role", json={"role": "admin"}, headers=_auth(owner_id))
    assert promote.status_code == 200
    assert promote.json()["role"] == "admin"

    demote = client.patch(f"/api/team/members/{member_id}/role", json={"role": "member"}, headers=_auth(owner_id))
    assert demote.status_code == 200

    with SessionLocal() as db:
        assert db.get(User, member_id).role == RoleEnum.MEMBER
        changes = db.query(AuditLog).filter(AuditLog.action == AuditActionEnum.CHANGE_ROLE).order_by(AuditLog.id).all()
        assert [(c.details["old_role"], c.details["new_role"]) for c in changes] == [
            ("member", "admin"),
            ("admin", "member"),
        ]
    _assert_single_owner(SessionLocal)


def test_owner_cannot_change_own_role(tmp_path, monkeypatch):
    SessionLocal = _setup_db(tmp_path, monkeypatch)
    with SessionLocal() as db:
        _org, owner, _admin, _member = make_team(db)
        owner_id = owner.id

    resp = client.patch(f"/api/team/members/{owner_id}/role", json={"role": "member"}, headers=_auth(owner_id))
    assert resp.status_code == 400
    assert resp.json()["code"] == "self_change"
    with SessionLocal() as db:
        assert db.get(User, owner_id).role == RoleEnum.OWNER


def test_admin_cannot_change_roles(tmp_path, monkeypatch):
    SessionLocal = _setup_db(tmp_path, monkeypatch)
    with SessionLocal() as db:
        _org, _owner, admin, member = make_team(db)
        admin_id, member_id = admin.id, member.id

    resp = client.patch(f"/api/team/members/{member_id}/role", json={"role": "admin"}, headers=_auth(admin_id))
    assert resp.status_code == 403
    with SessionLocal() as db:
        assert db.get(User, member_id).role == RoleEnum.MEMBER


def test_owner_role_is_never_assignable(tmp_path, monkeypatch):
    SessionLocal = _setup_db(tmp_path, monkeypatch)
    with SessionLocal() as db:
        _org, owner, admin, _member = make_team(db)
        owner_id, admin_id = owner.id, admin.id

    resp = client.patch(f"/api/team/members/{admin_id}/role", json={"role": "owner"}, headers=_auth(owner_id))
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_role"

    bogus = client.patch(f"/api/team/members/{admin_id}/role", json={"role": "superuser"}, headers=_auth(owner_id))
    assert bogus.status_code == 400
    _assert_single_owner(SessionLocal)


def test_cross_tenant_role_change_looks_like_not_found(tmp_path, monkeypatch):
    SessionLocal = _setup_db(tmp_path, monkeypatch)
    with SessionLocal() as db:
        _org_a, owner_a, _admin_a, _member_a = make_team(db, name="A")
        _org_b, _owner_b, _admin_b, member_b = make_team(db, name="B")
        owner_a_id, member_b_id = owner_a.id, member_b.id

    resp = client.patch(f"/api/team/members/{member_b_id}/role", json={"role": "admin"}, headers=_auth(owner_a_id))
    assert resp.status_code == 404
    with SessionLocal() as db:
        assert db.get(User, member_b_id).role == RoleEnum.MEMBER


def test_every_user_references_an_existing_organization(tmp_path, monkeypatch):
    SessionLocal = _setup_db(tmp_path, monkeypatch)
    with SessionLocal() as db:
        make_team(db, name="A")
        make_team(db, name="B")
        orphans = (
            db.query(User)
            .outerjoin(Organization, Organization.id == User.organization_id)
            .filter(Organization.id.is_(None))
            .count()
        )
        assert orphans == 0
