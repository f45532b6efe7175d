"""Integration tests for /api/logging."""


class TestActivityLogAccess:
    def test_activity_view_permission_grants_access(self, client, headers_for):
        response = client.get("/api/logging/activity", headers=headers_for("activity_view"))
        assert response.status_code == 200

    def test_full_access_role_grants_access(self, client, headers_for):
        response = client.get("/api/logging/activity", headers=headers_for(role_name="full_access"))
        assert response.status_code == 200

    def test_other_roles_are_refused(self, client, user_headers):
        response = client.get("/api/logging/activity", headers=user_headers)
        assert response.status_code == 403
        assert response.json()["required"] == {
            "anyOfPermissions": ["activity_view"],
            "anyOfRoles": ["Admin", "full_access"],
        }


class TestActivityLogQueries:
    def test_logs_written_by_database_sink(self, client, admin_headers, db_session):
        from employdex.db.session import SessionLocal
        from employdex.main import app
        from employdex.services.audit_service import DatabaseAuditSink

        app.state.audit_sink = DatabaseAuditSink(SessionLocal)
        client.post(
            "/api/role_management/roles", json={"name": "Logged"}, headers=admin_headers
        )

        response = client.get("/api/logging/activity?action=CREATE_ROLE", headers=admin_headers)
        data = response.json()
        assert data["total"] == 1
        assert data["logs"][0]["entity"] == "role"

        stats = client.get("/api/logging/stats", headers=admin_headers).json()
        assert len(stats["daily_activity"]) == 7

        actions = client.get("/api/logging/actions", headers=admin_headers).json()
        assert "CREATE_ROLE" in actions["actions"]
