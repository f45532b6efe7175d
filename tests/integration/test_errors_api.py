"""Integration tests for error rendering, request ids, and health endpoints."""

from fastapi.testclient import TestClient

from employdex.main import app
from employdex.services.role_service import role_service


def test_unhandled_error_returns_incident_id(client, admin_headers, audit_sink, monkeypatch):
    def boom(db):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(role_service, "list_roles", boom)
    quiet = TestClient(app, raise_server_exceptions=False)

    response = quiet.get("/api/role_management/roles", headers=admin_headers)

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Internal server error"
    assert body["incident_id"]
    assert "connection reset" not in response.text
    error_entry = audit_sink.entries[-1]
    assert error_entry.action == "ERROR"
    assert error_entry.details["incident_id"] == body["incident_id"]


def test_validation_errors_use_error_body(client):
    response = client.post("/api/authentication/login", json={"password": "x"})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert body["errors"]


def test_request_id_round_trip(client):
    response = client.get("/api/health", headers={"X-Request-Id": "abc-123"})
    assert response.status_code == 200
    assert response.headers["X-Request-Id"] == "abc-123"
    assert "X-Response-Time-Ms" in response.headers


def test_request_id_generated(client):
    response = client.get("/")
    assert response.json()["name"]
    assert response.headers["X-Request-Id"]


def test_database_status_requires_permission(client, admin_headers):
    assert client.get("/api/database/status").status_code == 401
    response = client.get("/api/database/status", headers=admin_headers)
    assert response.json()["status"] == "ok"
    assert response.json()["database"] == "sqlite"


def test_malformed_request_id_is_replaced(client):
    response = client.get("/api/health", headers={"X-Request-Id": "bad id with spaces"})
    assert response.headers["X-Request-Id"] != "bad id with spaces"
    assert len(response.headers["X-Request-Id"]) == 36


def test_access_log_names_the_caller(client, admin_headers, db_session, caplog):
    from employdex.services import rbac_service

    caplog.set_level("INFO", logger="employdex.http")
    client.get("/api/authentication/me", headers=admin_headers)
    primary = rbac_service.primary_admin_id(db_session)
    assert "/api/authentication/me 200" in caplog.text
    assert f"user={primary}" in caplog.text
