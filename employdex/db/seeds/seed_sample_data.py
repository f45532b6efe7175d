"""Seed sample roles and users for demo purposes."""

from sqlalchemy.orm import Session

from employdex.core.security import hash_password
from employdex.models import Permission, Role, RolePermission, User, UserRole
from employdex.services import rbac_service

SAMPLE_PASSWORD = "Passw0rd!"

SAMPLE_ROLES = [
    ("full_access", "Every permission, without being a system role", None),
    ("Editor", "Manage users", ["user_view", "user_create", "user_edit"]),
    ("Viewer", "Read-only access", ["user_view", "role_view", "permission_view", "feature_toggle_view"]),
    ("Cashier", "Record and view payments", ["payment_view", "payment_create"]),
]

SAMPLE_USERS = [
    ("8888888888", "fa@employdex.local", "FA", "User", "full_access"),
    ("9000000001", "editor@employdex.local", "Erin", "Editor", "Editor"),
    ("9000000002", "viewer@employdex.local", "Victor", "Viewer", "Viewer"),
    ("9000000003", "cashier@employdex.local", "Cass", "Cashier", "Cashier"),
    ("9000000004", "user@employdex.local", "Uma", "User", "User"),
]


def seed_sample_data(db: Session) -> None:
    """Insert sample roles and one user per role."""
    if not rbac_service.get_admin_role(db):
        print("⚠️  System roles not found. Run seed_rbac first.")
        return

    all_ids = sorted(rbac_service.catalog_ids(db))
    for name, description, permission_names in SAMPLE_ROLES:
        if db.query(Role).filter(Role.name == name).first():
            continue
        role = Role(name=name, description=description, is_system=False)
        db.add(role)
        db.flush()
        if permission_names is None:
            ids = all_ids
        else:
            ids = [p.id for p in db.query(Permission).filter(Permission.name.in_(permission_names))]
        for permission_id in ids:
            db.add(RolePermission(role_id=role.id, permission_id=permission_id))

    for mobile, email, first, last, role_name in SAMPLE_USERS:
        if db.query(User).filter(User.email == email).first():
            continue
        user = User(
            mobile_number=mobile,
            email=email,
            hashed_password=hash_password(SAMPLE_PASSWORD),
            first_name=first,
            last_name=last,
            is_active=True,
        )
        db.add(user)
        db.flush()
        role = db.query(Role).filter(Role.name == role_name).one()
        db.add(UserRole(user_id=user.id, role_id=role.id))

    db.commit()
    print(f"✅ Seeded {len(SAMPLE_ROLES)} sample roles and {len(SAMPLE_USERS)} sample users")
