"""Invariant checks applied to RBAC mutations before and after writing.

Each check raises :class:`InvariantViolationError` (403 unless stated) and
leaves the database untouched; callers run them inside ``transaction()`` so
a failing post-write check rolls the whole change back.
"""

from typing import Iterable, Optional

from fastapi import status
from sqlalchemy.orm import Session

from employdex.core.exceptions import InvariantViolationError
from employdex.models import Permission, Role, User
from employdex.services import rbac_service

ADMIN_INCOMPLETE = "Admin role must have all permissions"


def _missing_names(db: Session, missing_ids) -> list:
    if not missing_ids:
        return []
    rows = db.query(Permission.name).filter(Permission.id.in_(missing_ids)).all()
    return sorted(name for (name,) in rows)


def check_admin_permission_set(db: Session, role: Role, proposed_ids: Iterable[int]) -> None:
    """The Admin role's proposed grant set must equal the full catalog."""
    if not role.is_admin:
        return
    catalog = rbac_service.catalog_ids(db)
    proposed = set(proposed_ids)
    if proposed != catalog:
        raise InvariantViolationError(
            ADMIN_INCOMPLETE,
            missing_permissions=_missing_names(db, catalog - proposed),
        )


def verify_admin_complete(db: Session, role: Role) -> None:
    """Post-write re-check: the stored Admin grants cover the catalog.

    Runs after the delete-then-insert in the same transaction, so the
    catalog read here sees any permission committed before our write lock.
    """
    if not role.is_admin:
        return
    catalog = rbac_service.catalog_ids(db)
    granted = rbac_service.role_permission_ids(db, role.id)
    if granted != catalog:
        raise InvariantViolationError(
            ADMIN_INCOMPLETE,
            missing_permissions=_missing_names(db, catalog - granted),
        )


def check_role_rename(role: Role, new_name: Optional[str]) -> None:
    if role.is_system and new_name is not None and new_name != role.name:
        raise InvariantViolationError(f"Cannot rename system role '{role.name}'")


def check_role_deletable(db: Session, role: Role) -> None:
    if role.is_system:
        raise InvariantViolationError(f"Cannot delete system role '{role.name}'")
    user_count = rbac_service.role_user_count(db, role.id)
    if user_count > 0:
        raise InvariantViolationError(
            "Cannot delete role that is assigned to users",
            status_code=status.HTTP_400_BAD_REQUEST,
            user_count=user_count,
        )


def check_user_deletable(db: Session, user: User) -> None:
    if user.id == rbac_service.primary_admin_id(db):
        raise InvariantViolationError("Cannot delete the primary administrator account")


def check_primary_admin_keeps_admin(
    db: Session, user: User, new_role_ids: Iterable[int], primary_id: Optional[int] = None
) -> None:
    """The primary administrator cannot be stripped of the Admin role.

    Pass ``primary_id`` captured before a write: once the Admin row is gone
    the primary administrator recomputes to someone else.
    """
    if primary_id is None:
        primary_id = rbac_service.primary_admin_id(db)
    if user.id != primary_id:
        return
    admin = rbac_service.get_admin_role(db)
    if admin is not None and admin.id not in set(new_role_ids):
        raise InvariantViolationError("Cannot remove the Admin role from the primary administrator")


def check_primary_admin_stays_active(db: Session, user: User, is_active: bool) -> None:
    if not is_active and user.id == rbac_service.primary_admin_id(db):
        raise InvariantViolationError("Cannot deactivate the primary administrator account")
