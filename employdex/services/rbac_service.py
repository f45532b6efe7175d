"""RBAC lookups: claims resolution, role/permission sets, primary admin."""

from typing import Iterable, List, Optional, Set

from sqlalchemy import func
from sqlalchemy.orm import Session

from employdex.core.access import Claims
from employdex.core.exceptions import ValidationError
from employdex.models import ADMIN_ROLE, Permission, Role, RolePermission, User, UserRole


def get_role_by_name(db: Session, name: str) -> Optional[Role]:
    return db.query(Role).filter(Role.name == name).first()


def get_admin_role(db: Session) -> Optional[Role]:
    return get_role_by_name(db, ADMIN_ROLE)


def resolve_claims(db: Session, user: User) -> Claims:
    """Roles held by the user plus the union of those roles' permissions."""
    role_rows = (
        db.query(Role.id, Role.name)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user.id)
        .all()
    )
    role_ids = [role_id for role_id, _ in role_rows]
    permission_names: Set[str] = set()
    if role_ids:
        rows = (
            db.query(Permission.name)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .filter(RolePermission.role_id.in_(role_ids))
            .distinct()
            .all()
        )
        permission_names = {name for (name,) in rows}

    return Claims(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        roles=frozenset(name for _, name in role_rows),
        permissions=frozenset(permission_names),
    )


def primary_admin_id(db: Session) -> Optional[int]:
    """Id of the earliest-created user holding the Admin role."""
    row = (
        db.query(User.id)
        .join(UserRole, UserRole.user_id == User.id)
        .join(Role, Role.id == UserRole.role_id)
        .filter(Role.name == ADMIN_ROLE)
        .order_by(User.created_at.asc(), User.id.asc())
        .first()
    )
    return row[0] if row else None


def catalog_ids(db: Session) -> Set[int]:
    return {pid for (pid,) in db.query(Permission.id).all()}


def role_permission_ids(db: Session, role_id: int) -> Set[int]:
    rows = db.query(RolePermission.permission_id).filter(RolePermission.role_id == role_id).all()
    return {pid for (pid,) in rows}


def role_user_count(db: Session, role_id: int) -> int:
    return db.query(func.count(UserRole.user_id)).filter(UserRole.role_id == role_id).scalar() or 0


def user_role_ids(db: Session, user_id: int) -> Set[int]:
    rows = db.query(UserRole.role_id).filter(UserRole.user_id == user_id).all()
    return {rid for (rid,) in rows}


def replace_role_permissions(db: Session, role_id: int, permission_ids: Iterable[int]) -> None:
    """Delete-then-insert a role's grants. Caller owns the transaction."""
    db.query(RolePermission).filter(RolePermission.role_id == role_id).delete(synchronize_session=False)
    for permission_id in sorted(set(permission_ids)):
        db.add(RolePermission(role_id=role_id, permission_id=permission_id))
    db.flush()


def replace_user_roles(db: Session, user_id: int, role_ids: Iterable[int]) -> None:
    """Delete-then-insert a user's role assignments. Caller owns the transaction."""
    db.query(UserRole).filter(UserRole.user_id == user_id).delete(synchronize_session=False)
    for role_id in sorted(set(role_ids)):
        db.add(UserRole(user_id=user_id, role_id=role_id))
    db.flush()


def roles_by_names(db: Session, names: Iterable[str]) -> List[Role]:
    """Resolve role names, failing on any unknown name."""
    wanted = [name.strip() for name in names if name and name.strip()]
    if not wanted:
        return []
    roles = db.query(Role).filter(Role.name.in_(wanted)).all()
    found = {role.name for role in roles}
    missing = sorted(set(wanted) - found)
    if missing:
        raise ValidationError(f"Unknown role(s): {', '.join(missing)}", roles=missing)
    return roles


def permissions_by_ids(db: Session, permission_ids: Iterable[int]) -> List[Permission]:
    """Resolve permission ids, failing on any unknown id."""
    wanted = set(permission_ids)
    if not wanted:
        return []
    permissions = db.query(Permission).filter(Permission.id.in_(wanted)).all()
    missing = sorted(wanted - {p.id for p in permissions})
    if missing:
        raise ValidationError("Unknown permission id(s)", permission_ids=missing)
    return permissions


def permissions_by_names(db: Session, names: Iterable[str]) -> List[Permission]:
    wanted = [name.strip() for name in names if name and name.strip()]
    if not wanted:
        return []
    permissions = db.query(Permission).filter(Permission.name.in_(wanted)).all()
    missing = sorted(set(wanted) - {p.name for p in permissions})
    if missing:
        raise ValidationError(f"Unknown permission(s): {', '.join(missing)}", permissions=missing)
    return permissions
