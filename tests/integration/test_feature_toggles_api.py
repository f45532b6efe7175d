"""Integration tests for /api/feature-toggles."""


class TestFeatureToggles:
    def test_list_seeded_toggles(self, client, admin_headers):
        response = client.get("/api/feature-toggles/", headers=admin_headers)
        assert response.status_code == 200
        names = {t["feature_name"]: t["is_enabled"] for t in response.json()}
        assert names["payment_integration"] is False
        assert names["user_bulk_upload"] is True

    def test_switch_by_name(self, client, admin_headers, audit_sink):
        response = client.patch(
            "/api/feature-toggles/update",
            json={"feature_name": "payment_integration", "is_enabled": True},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["is_enabled"] is True
        assert "feature-toggle:payment_integration" in audit_sink.event_names()

        fetched = client.get("/api/feature-toggles/payment_integration", headers=admin_headers)
        assert fetched.json()["is_enabled"] is True

    def test_switch_unknown_toggle(self, client, admin_headers):
        response = client.patch(
            "/api/feature-toggles/update",
            json={"feature_name": "nope", "is_enabled": True},
            headers=admin_headers,
        )
        assert response.status_code == 404

    def test_create_update_delete(self, client, admin_headers):
        response = client.post(
            "/api/feature-toggles/",
            json={"feature_name": "beta_reports", "is_enabled": False, "description": "Beta"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        toggle_id = response.json()["id"]

        duplicate = client.post(
            "/api/feature-toggles/", json={"feature_name": "beta_reports"}, headers=admin_headers
        )
        assert duplicate.status_code == 409

        updated = client.put(
            f"/api/feature-toggles/{toggle_id}", json={"is_enabled": True}, headers=admin_headers
        )
        assert updated.json()["is_enabled"] is True

        deleted = client.delete(f"/api/feature-toggles/{toggle_id}", headers=admin_headers)
        assert deleted.status_code == 200
        missing = client.get("/api/feature-toggles/beta_reports", headers=admin_headers)
        assert missing.status_code == 404

    def test_view_permission_cannot_edit(self, client, headers_for):
        headers = headers_for("feature_toggle_view")
        assert client.get("/api/feature-toggles/", headers=headers).status_code == 200
        response = client.patch(
            "/api/feature-toggles/update",
            json={"feature_name": "payment_integration", "is_enabled": True},
            headers=headers,
        )
        assert response.status_code == 403
