import logging
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
from app.core.logging import JsonLogFormatter  # noqa: E402
from app.core.security import create_session_token  # noqa: E402
from tests.factories import make_team  # noqa: E402


def _setup_db(tmp_path, monkeypatch):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'logging.db'}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    monkeypatch.setattr(db_module, "engine", engine)
    monkeypatch.setattr(db_module, "SessionLocal", SessionLocal)
    Base.metadata.create_all(bind=engine)
    return SessionLocal


def _completed(caplog):
    return [record for record in caplog.records if record.getMessage() == "request.completed"]


def test_logging_includes_request_id_and_actor(tmp_path, monkeypatch, caplog):
    SessionLocal = _setup_db(tmp_path, monkeypatch)
    with SessionLocal() as db:
        organization, _owner, admin, _member = make_team(db)
        organization_id, admin_id = organization.id, admin.id

    logger = logging.getLogger("api_logger")
    logger.addHandler(caplog.handler)
    logger.setLevel(logging.INFO)
    try:
        client = TestClient(app)
        response = client.get(
            "/api/team",
            headers={
                "X-Request-Id": "req-123",
                "Authorization": f"Bearer {create_session_token(admin_id)}",
            },
        )
        assert response.status_code == 200
        assert response.headers.get("X-Request-Id") == "req-123"

        records = _completed(caplog)
        assert records, "Expected a structured request log entry"
        entry = records[-1]
        assert getattr(entry, "request_id", None) == "req-123"
        assert getattr(entry, "organization_id", None) == organization_id
        assert getattr(entry, "user_id", None) == admin_id
        assert getattr(entry, "route", None) == "/api/team"
        assert getattr(entry, "status_code", None) == 200
    finally:
        logger.removeHandler(caplog.handler)


def test_logging_records_error_code_for_failures(caplog):
    logger = logging.getLogger("api_logger")
    logger.addHandler(caplog.handler)
    logger.setLevel(logging.INFO)
    try:
        client = TestClient(app)
        response = client.get("/api/team")
        assert response.status_code == 401
        assert response.headers.get("X-Request-Id")

        entry = _completed(caplog)[-1]
        assert getattr(entry, "status_code", None) == 401
        assert getattr(entry, "error_code", None) == "unauthorized"
        assert getattr(entry, "user_id", "missing") is None
    finally:
        logger.removeHandler(caplog.handler)


def test_json_formatter_emits_extra_fields():
    record = logging.LogRecord("api_logger", logging.INFO, __file__, 1, "request.completed", None, None)
    record.request_id = "req-9"
    record.status_code = 204
    formatted = JsonLogFormatter().format(record)
    assert '"message":"request.completed"' in formatted
    assert '"request_id":"req-9"' in formatted
    assert '"status_code":204' in formatted


def test_json_formatter_redacts_secret_fields():
    record = logging.LogRecord("app.crud.credentials", logging.INFO, __file__, 1, "vault.saved", None, None)
    record.api_key = "api_live_abc123"
    record.organization_id = 7
    formatted = JsonLogFormatter().format(record)
    assert "api_live_abc123" not in formatted
    assert '"api_key":"[redacted]"' in formatted
    assert '"organization_id":7' in formatted


def test_untrusted_request_ids_are_replaced(caplog):
    client = TestClient(app)
    response = client.get("/health", headers={"X-Request-Id": "bad id with spaces"})
    assert response.status_code == 200
    echoed = response.headers["X-Request-Id"]
    assert echoed != "bad id with spaces"
    assert len(echoed) == 32
