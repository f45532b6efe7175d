"""Seed the permission catalog, system roles, and feature toggles."""

from sqlalchemy.orm import Session

from employdex.models import (
    ADMIN_ROLE, DEFAULT_ROLE, FeatureToggle, Permission, Role, RolePermission,
)
from employdex.services import rbac_service

PERMISSION_CATALOG = [
    ("user_view", "View users"),
    ("user_create", "Create users"),
    ("user_edit", "Edit users"),
    ("user_delete", "Delete users"),
    ("role_view", "View roles"),
    ("role_create", "Create roles"),
    ("role_edit", "Edit roles"),
    ("role_delete", "Delete roles"),
    ("permission_view", "View permissions"),
    ("permission_assign", "Create permissions and assign them to roles"),
    ("activity_view", "View activity logs"),
    ("feature_toggle_view", "View feature toggles"),
    ("feature_toggle_edit", "Edit feature toggles"),
    ("payment_view", "View payment QR codes and transactions"),
    ("payment_create", "Record payment transactions"),
    ("payment_edit", "Manage QR codes and verify transactions"),
    ("payment_delete", "Delete payment QR codes"),
]

SYSTEM_ROLES = [
    (ADMIN_ROLE, "Administrator with full system access"),
    (DEFAULT_ROLE, "Default role for registered users"),
]

DEFAULT_FEATURE_TOGGLES = [
    ("payment_integration", False, "Payment QR codes and transactions", "payment"),
    ("user_bulk_upload", True, "CSV bulk upload of users", "user_management"),
    ("activity_logging", True, "Activity log viewer", "logging"),
]


def seed_permissions(db: Session) -> int:
    added = 0
    for name, description in PERMISSION_CATALOG:
        if not db.query(Permission).filter(Permission.name == name).first():
            db.add(Permission(name=name, description=description))
            added += 1
    db.flush()
    return added


def seed_system_roles(db: Session) -> None:
    """Create Admin and User; Admin is (re)granted the whole catalog."""
    for name, description in SYSTEM_ROLES:
        role = db.query(Role).filter(Role.name == name).first()
        if not role:
            db.add(Role(name=name, description=description, is_system=True))
        elif not role.is_system:
            role.is_system = True
    db.flush()

    admin = db.query(Role).filter(Role.name == ADMIN_ROLE).one()
    granted = rbac_service.role_permission_ids(db, admin.id)
    for permission_id in sorted(rbac_service.catalog_ids(db) - granted):
        db.add(RolePermission(role_id=admin.id, permission_id=permission_id))
    db.flush()


def seed_feature_toggles(db: Session) -> None:
    for name, enabled, description, feature in DEFAULT_FEATURE_TOGGLES:
        if not db.query(FeatureToggle).filter(FeatureToggle.feature_name == name).first():
            db.add(FeatureToggle(feature_name=name, is_enabled=enabled, description=description, feature=feature))
    db.flush()


def seed_rbac(db: Session, verbose: bool = True) -> None:
    """Idempotent: safe to run on every start."""
    added = seed_permissions(db)
    seed_system_roles(db)
    seed_feature_toggles(db)
    db.commit()
    if verbose:
        print(f"✅ Seeded {len(PERMISSION_CATALOG)} permissions ({added} new), system roles, feature toggles")
