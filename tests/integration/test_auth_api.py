"""Integration tests for /api/authentication."""

from employdex.core.security import decode_claims


def login_body(kind, value, password):
    return {"identifier": {"kind": kind, "value": value}, "password": password}


class TestLogin:
    def test_admin_logs_in_by_email(self, client, audit_sink):
        response = client.post(
            "/api/authentication/login", json=login_body("email", "admin@example.com", "AdminPass1")
        )
        assert response.status_code == 200
        data = response.json()
        assert data["user"]["roles"] == ["Admin"]
        assert "role_delete" in data["user"]["permissions"]
        assert "LOGIN" in audit_sink.actions()

        claims = decode_claims(data["token"])
        assert claims.roles == {"Admin"}
        assert claims.permissions == set(data["user"]["permissions"])

    def test_admin_logs_in_by_mobile(self, client):
        response = client.post(
            "/api/authentication/login", json=login_body("mobile", "9999999999", "AdminPass1")
        )
        assert response.status_code == 200

    def test_permissions_are_union_of_roles(self, client, make_role, make_user):
        make_role("A", ["user_view", "role_view"])
        make_role("B", ["role_view", "activity_view"])
        make_role("Empty")
        make_user("multi@example.com", roles=("A", "B", "Empty"))

        response = client.post(
            "/api/authentication/login", json=login_body("email", "multi@example.com", "UserPass1")
        )
        user = response.json()["user"]
        assert sorted(user["roles"]) == ["A", "B", "Empty"]
        assert sorted(user["permissions"]) == ["activity_view", "role_view", "user_view"]

    def test_unknown_identity_and_wrong_password_look_the_same(self, client):
        unknown = client.post(
            "/api/authentication/login", json=login_body("email", "ghost@example.com", "AdminPass1")
        )
        wrong = client.post(
            "/api/authentication/login", json=login_body("email", "admin@example.com", "WrongPass1")
        )
        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json() == {"error": "Invalid credentials"}

    def test_disabled_account(self, client, make_user):
        make_user("off@example.com", is_active=False)
        response = client.post(
            "/api/authentication/login", json=login_body("email", "off@example.com", "UserPass1")
        )
        assert response.status_code == 401
        assert "disabled" in response.json()["error"]

    def test_identifier_kind_is_required(self, client):
        response = client.post(
            "/api/authentication/login",
            json={"identifier": {"value": "admin@example.com"}, "password": "AdminPass1"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"


class TestRegister:
    def payload(self, **overrides):
        body = {
            "mobile_number": "9123456780",
            "email": "New.Person@Example.com",
            "password": "Sturdy123",
            "first_name": "New",
            "last_name": "Person",
        }
        body.update(overrides)
        return body

    def test_register_assigns_default_role(self, client):
        response = client.post("/api/authentication/register", json=self.payload())
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "new.person@example.com"
        assert data["roles"] == ["User"]

    def test_duplicate_email_conflicts(self, client):
        client.post("/api/authentication/register", json=self.payload())
        response = client.post(
            "/api/authentication/register", json=self.payload(mobile_number="9123456781")
        )
        assert response.status_code == 409

    def test_weak_password_rejected(self, client):
        response = client.post("/api/authentication/register", json=self.payload(password="alllower1"))
        assert response.status_code == 400

    def test_password_longer_than_bcrypt_limit_rejected(self, client):
        response = client.post(
            "/api/authentication/register", json=self.payload(password="Aa1" + "x" * 80)
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"


class TestPasswordReset:
    def test_reset_flow(self, client, audit_sink, make_user):
        make_user("forgetful@example.com")
        response = client.post("/api/authentication/forgot-password", json={"email": "forgetful@example.com"})
        assert response.status_code == 200
        event, payload = next(e for e in audit_sink.events if e[0] == "user:password_reset_requested")

        response = client.post(
            "/api/authentication/reset-password",
            json={"token": payload["token"], "password": "Brandnew1"},
        )
        assert response.status_code == 200
        login = client.post(
            "/api/authentication/login", json=login_body("email", "forgetful@example.com", "Brandnew1")
        )
        assert login.status_code == 200

        reused = client.post(
            "/api/authentication/reset-password",
            json={"token": payload["token"], "password": "Another12"},
        )
        assert reused.status_code == 400
        assert reused.json() == {"error": "Invalid or expired reset token"}

    def test_unknown_email_gets_same_answer(self, client, audit_sink):
        known = client.post("/api/authentication/forgot-password", json={"email": "admin@example.com"})
        unknown = client.post("/api/authentication/forgot-password", json={"email": "nobody@example.com"})
        assert known.json() == unknown.json()
        assert audit_sink.event_names().count("user:password_reset_requested") == 1

    def test_bad_reset_token(self, client):
        response = client.post(
            "/api/authentication/reset-password", json={"token": "garbage", "password": "Brandnew1"}
        )
        assert response.status_code == 400


class TestMe:
    def test_me_requires_token(self, client):
        response = client.get("/api/authentication/me")
        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required"}

    def test_me_returns_profile_and_claims(self, client, admin_headers):
        response = client.get("/api/authentication/me", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "admin@example.com"
        assert data["roles"] == ["Admin"]

    def test_garbage_token_is_unauthenticated(self, client):
        response = client.get("/api/authentication/me", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
