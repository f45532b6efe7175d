"""Tests for deriving route permission names from the mounted API."""

from employdex.main import app
from employdex.services.permission_service import permission_service, route_permission_name


def test_names_cover_every_operation_under_prefix():
    paths = {
        "/": {"get": {}},
        "/api/role_management/roles/{role_id}": {"get": {}, "put": {}, "parameters": []},
        "/api/feature-toggles/update": {"patch": {}},
    }
    assert permission_service.api_route_permission_names(paths) == [
        "route_get_api_role_management_roles_role_id",
        "route_patch_api_feature_toggles_update",
        "route_put_api_role_management_roles_role_id",
    ]


def test_routers_included_into_the_app_are_discovered():
    names = permission_service.api_route_permission_names(app.openapi()["paths"])
    assert route_permission_name("GET", "/api/role_management/roles") in names
    assert route_permission_name("POST", "/api/payment/transactions") in names
    assert route_permission_name("GET", "/api/health") in names
    assert not any(name == "route_get" for name in names)
