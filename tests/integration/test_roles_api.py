"""Integration tests for /api/role_management."""

import io

from employdex.models import Role, RolePermission, UserRole


class TestRoleAccess:
    def test_requires_authentication(self, client):
        response = client.get("/api/role_management/roles")
        assert response.status_code == 401

    def test_insufficient_permission_echoes_requirement(self, client, headers_for):
        headers = headers_for("user_view", role_name="Viewer")
        response = client.get("/api/role_management/roles", headers=headers)
        assert response.status_code == 403
        assert response.json() == {
            "error": "Access denied: insufficient permissions/roles",
            "required": {"anyOfPermissions": ["role_view"], "anyOfRoles": []},
        }

    def test_role_view_is_enough_to_list(self, client, headers_for):
        response = client.get("/api/role_management/roles", headers=headers_for("role_view"))
        assert response.status_code == 200
        names = [r["name"] for r in response.json()]
        assert "Admin" in names and "User" in names


class TestRoleCrud:
    def test_create_update_delete(self, client, admin_headers, db_session, audit_sink):
        perms = client.get("/api/permission_management/permissions", headers=admin_headers).json()
        ids = {p["name"]: p["id"] for p in perms}

        response = client.post(
            "/api/role_management/roles",
            json={"name": "Support", "description": "Helpdesk", "permission_ids": [ids["user_view"]]},
            headers=admin_headers,
        )
        assert response.status_code == 201
        role = response.json()
        assert [p["name"] for p in role["permissions"]] == ["user_view"]

        response = client.put(
            f"/api/role_management/roles/{role['id']}",
            json={"name": "Helpdesk", "permission_ids": [ids["user_view"], ids["user_edit"]]},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Helpdesk"
        assert len(response.json()["permissions"]) == 2

        response = client.delete(f"/api/role_management/roles/{role['id']}", headers=admin_headers)
        assert response.status_code == 200
        assert db_session.query(Role).filter(Role.id == role["id"]).first() is None
        assert ["CREATE_ROLE", "UPDATE_ROLE", "DELETE_ROLE"] == [
            a for a in audit_sink.actions() if a.endswith("_ROLE")
        ]
        assert "role:updated" in audit_sink.event_names()

    def test_duplicate_name_conflicts(self, client, admin_headers):
        response = client.post("/api/role_management/roles", json={"name": "Admin"}, headers=admin_headers)
        assert response.status_code == 409

    def test_get_role_lists_users(self, client, admin_headers, db_session):
        admin = db_session.query(Role).filter(Role.name == "Admin").one()
        response = client.get(f"/api/role_management/roles/{admin.id}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["users"][0]["email"] == "admin@example.com"

    def test_missing_role_is_404(self, client, admin_headers):
        response = client.get("/api/role_management/roles/9999", headers=admin_headers)
        assert response.status_code == 404
        assert response.json() == {"error": "Role not found"}


class TestRoleInvariants:
    def test_rename_admin_rejected(self, client, admin_headers, db_session):
        admin = db_session.query(Role).filter(Role.name == "Admin").one()
        response = client.put(
            f"/api/role_management/roles/{admin.id}",
            json={"name": "Administrator"},
            headers=admin_headers,
        )
        assert response.status_code == 403
        db_session.expire_all()
        assert db_session.query(Role).filter(Role.id == admin.id).one().name == "Admin"

    def test_shrinking_admin_rejected(self, client, admin_headers, db_session):
        admin = db_session.query(Role).filter(Role.name == "Admin").one()
        response = client.put(
            f"/api/role_management/roles/{admin.id}",
            json={"permission_ids": []},
            headers=admin_headers,
        )
        assert response.status_code == 403
        assert response.json()["error"] == "Admin role must have all permissions"

    def test_delete_role_in_use(self, client, admin_headers, db_session, make_role, make_user):
        role = make_role("Crew", ["user_view"])
        for i in range(3):
            make_user(f"crew{i}@example.com", roles=("Crew",))
        grants = db_session.query(RolePermission).count()
        assignments = db_session.query(UserRole).count()

        response = client.delete(f"/api/role_management/roles/{role.id}", headers=admin_headers)

        assert response.status_code == 400
        body = response.json()
        assert body["user_count"] == 3
        assert "error" in body
        assert db_session.query(RolePermission).count() == grants
        assert db_session.query(UserRole).count() == assignments

    def test_delete_system_role(self, client, admin_headers, db_session):
        user_role = db_session.query(Role).filter(Role.name == "User").one()
        response = client.delete(f"/api/role_management/roles/{user_role.id}", headers=admin_headers)
        assert response.status_code == 403


class TestRoleBulk:
    def test_template_and_upload(self, client, admin_headers):
        template = client.get("/api/role_management/roles/template", headers=admin_headers)
        assert template.status_code == 200
        assert template.text.startswith("name,description,permissions")

        csv_bytes = b"name,description,permissions\nReporter,Reads,activity_view\n"
        response = client.post(
            "/api/role_management/roles/bulk",
            files={"file": ("roles.csv", io.BytesIO(csv_bytes), "text/csv")},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["successful"] == 1

    def test_non_csv_rejected(self, client, admin_headers):
        response = client.post(
            "/api/role_management/roles/bulk",
            files={"file": ("roles.png", io.BytesIO(b"\x89PNG"), "image/png")},
            headers=admin_headers,
        )
        assert response.status_code == 400
