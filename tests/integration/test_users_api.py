"""Integration tests for /api/user_management."""

import io

from employdex.models import User, UserRole
from employdex.services import rbac_service


def new_user(**overrides):
    body = {
        "mobile_number": "9300000001",
        "email": "hire@example.com",
        "password": "Welcome12",
        "first_name": "New",
        "last_name": "Hire",
    }
    body.update(overrides)
    return body


class TestUserList:
    def test_filters_and_pagination(self, client, admin_headers, make_user, make_role):
        make_role("Sales")
        make_user("alice@example.com", roles=("Sales",))
        make_user("bob@example.com", is_active=False)

        response = client.get("/api/user_management/users?limit=2", headers=admin_headers)
        data = response.json()
        assert data["total"] == 3
        assert data["pages"] == 2
        assert len(data["users"]) == 2

        response = client.get("/api/user_management/users?role=Sales", headers=admin_headers)
        assert [u["email"] for u in response.json()["users"]] == ["alice@example.com"]

        response = client.get("/api/user_management/users?is_active=false", headers=admin_headers)
        assert [u["email"] for u in response.json()["users"]] == ["bob@example.com"]

        response = client.get("/api/user_management/users?search=ALI", headers=admin_headers)
        assert response.json()["total"] == 1

    def test_plain_user_cannot_list(self, client, user_headers):
        response = client.get("/api/user_management/users", headers=user_headers)
        assert response.status_code == 403
        assert response.json()["required"]["anyOfPermissions"] == ["user_view"]


class TestUserMutations:
    def test_create_defaults_to_user_role(self, client, admin_headers):
        response = client.post("/api/user_management/users", json=new_user(), headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["roles"] == ["User"]

    def test_duplicate_mobile_conflicts(self, client, admin_headers):
        response = client.post(
            "/api/user_management/users",
            json=new_user(mobile_number="9999999999"),
            headers=admin_headers,
        )
        assert response.status_code == 409

    def test_update_replaces_roles(self, client, admin_headers, make_user, make_role):
        make_role("Ops")
        user = make_user("ops@example.com", roles=("User",))
        response = client.put(
            f"/api/user_management/users/{user.id}",
            json={"roles": ["Ops"], "first_name": "Olly"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["roles"] == ["Ops"]
        assert response.json()["first_name"] == "Olly"

    def test_primary_admin_cannot_drop_admin(self, client, admin_headers, db_session):
        primary = rbac_service.primary_admin_id(db_session)
        response = client.put(
            f"/api/user_management/users/{primary}",
            json={"roles": ["User"]},
            headers=admin_headers,
        )
        assert response.status_code == 403

    def test_status_toggle(self, client, admin_headers, make_user):
        user = make_user("pause@example.com")
        response = client.patch(
            f"/api/user_management/users/{user.id}/status",
            json={"is_active": False},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["is_active"] is False

    def test_delete_primary_admin_rejected(self, client, admin_headers, db_session):
        primary = rbac_service.primary_admin_id(db_session)
        response = client.delete(f"/api/user_management/users/{primary}", headers=admin_headers)
        assert response.status_code == 403
        assert response.json() == {"error": "Cannot delete the primary administrator account"}
        assert db_session.query(User).filter(User.id == primary).count() == 1

    def test_delete_other_user(self, client, admin_headers, db_session, make_user):
        user = make_user("gone@example.com")
        user_id = user.id
        response = client.delete(f"/api/user_management/users/{user_id}", headers=admin_headers)
        assert response.status_code == 200
        assert db_session.query(UserRole).filter(UserRole.user_id == user_id).count() == 0

    def test_delete_missing_user(self, client, admin_headers):
        response = client.delete("/api/user_management/users/4242", headers=admin_headers)
        assert response.status_code == 404


class TestUserBulk:
    def test_bulk_upload(self, client, admin_headers):
        content = (
            b"firstName,lastName,email,mobileNumber,password,roles,isActive\n"
            b"Kim,Lee,kim@example.com,9400000001,Passw0rd1,User,true\n"
            b"Kim,Dup,kim@example.com,9400000002,Passw0rd1,User,true\n"
        )
        response = client.post(
            "/api/user_management/users/bulk",
            files={"file": ("users.csv", io.BytesIO(content), "text/csv")},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["successful"] == 1
        assert response.json()["failed"] == 1

    def test_template(self, client, admin_headers):
        response = client.get("/api/user_management/users/template", headers=admin_headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
