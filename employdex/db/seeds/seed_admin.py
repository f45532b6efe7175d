"""Seed the primary administrator from settings."""

from sqlalchemy.orm import Session

from employdex.core.config import settings
from employdex.core.security import hash_password
from employdex.models import User, UserRole
from employdex.services import rbac_service


def seed_admin(db: Session, verbose: bool = True) -> None:
    """Create the primary administrator if not already present."""
    admin_role = rbac_service.get_admin_role(db)
    if not admin_role:
        print("⚠️  Admin role not found. Run seed_rbac first.")
        return

    existing = db.query(User).filter(User.email == settings.ADMIN_EMAIL.lower()).first()
    if existing:
        if verbose:
            print(f"ℹ️  Admin '{settings.ADMIN_EMAIL}' already exists, skipping.")
        return

    admin = User(
        email=settings.ADMIN_EMAIL.lower(),
        mobile_number=settings.ADMIN_MOBILE,
        hashed_password=hash_password(settings.ADMIN_PASSWORD),
        first_name=settings.ADMIN_FIRST_NAME,
        last_name=settings.ADMIN_LAST_NAME,
        is_active=True,
    )
    db.add(admin)
    db.flush()
    db.add(UserRole(user_id=admin.id, role_id=admin_role.id))
    db.commit()
    if verbose:
        print(f"✅ Created admin: {settings.ADMIN_EMAIL}")
