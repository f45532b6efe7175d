"""Permission service — catalog management and role grant assignment."""

import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from employdex.core.exceptions import ResourceConflictError, ResourceNotFoundError
from employdex.db.session import transaction
from employdex.models import Permission, Role, RolePermission
from employdex.services import mutation_guard, rbac_service
from employdex.services.audit_service import Auditor

logger = logging.getLogger("employdex.permissions")

ROUTE_METHODS = {"GET", "POST", "PUT", "PATCH", "DELETE"}


def route_permission_name(method: str, path: str) -> str:
    """``GET /api/roles/{id}`` -> ``route_get_api_roles_id``."""
    slug = re.sub(r"[^a-z]+", "_", path.lower()).strip("_")
    return f"route_{method.lower()}_{slug}" if slug else f"route_{method.lower()}"


class PermissionService:
    """Catalog CRUD. New permissions are granted to Admin in the same transaction."""

    @staticmethod
    def list_permissions(db: Session) -> List[Dict[str, Any]]:
        rows = (
            db.query(Permission, func.count(RolePermission.role_id))
            .outerjoin(RolePermission, RolePermission.permission_id == Permission.id)
            .group_by(Permission.id)
            .order_by(Permission.name)
            .all()
        )
        return [
            {
                "id": p.id,
                "name": p.name,
                "description": p.description,
                "created_at": p.created_at,
                "role_count": count,
            }
            for p, count in rows
        ]

    @staticmethod
    def get_permission(db: Session, permission_id: int) -> Permission:
        permission = db.query(Permission).filter(Permission.id == permission_id).first()
        if not permission:
            raise ResourceNotFoundError("Permission not found")
        return permission

    @staticmethod
    def serialize(permission: Permission) -> Dict[str, Any]:
        roles = [{"id": r.id, "name": r.name} for r in permission.roles]
        return {
            "id": permission.id,
            "name": permission.name,
            "description": permission.description,
            "created_at": permission.created_at,
            "role_count": len(roles),
            "roles": roles,
        }

    @staticmethod
    def _add_permission(db: Session, name: str, description: Optional[str], admin: Optional[Role]) -> Permission:
        permission = Permission(name=name, description=description)
        db.add(permission)
        db.flush()
        if admin is not None:
            db.add(RolePermission(role_id=admin.id, permission_id=permission.id))
            db.flush()
        return permission

    @staticmethod
    def create_permission(
        db: Session,
        auditor: Auditor,
        name: str,
        description: Optional[str] = None,
    ) -> Permission:
        if db.query(Permission).filter(Permission.name == name).first():
            raise ResourceConflictError(f"Permission '{name}' already exists")

        admin = rbac_service.get_admin_role(db)
        with transaction(db):
            permission = PermissionService._add_permission(db, name, description, admin)
            if admin is not None:
                mutation_guard.verify_admin_complete(db, admin)

        db.refresh(permission)
        logger.info("Created permission %s", name)
        auditor.record("CREATE_PERMISSION", "permission", permission.id, {"name": name})
        auditor.emit("permission:created", {"permission_id": permission.id, "name": name})
        return permission

    @staticmethod
    def update_description(
        db: Session, auditor: Auditor, permission_id: int, description: Optional[str]
    ) -> Permission:
        """Only the description is editable; names are immutable."""
        permission = PermissionService.get_permission(db, permission_id)
        old = permission.description
        with transaction(db):
            permission.description = description

        db.refresh(permission)
        auditor.record(
            "UPDATE_PERMISSION", "permission", permission.id,
            {"name": permission.name, "old_description": old, "new_description": description},
        )
        auditor.emit("permission:updated", {"permission_id": permission.id, "name": permission.name})
        return permission

    @staticmethod
    def roles_with_permissions(db: Session) -> Dict[str, Any]:
        roles = db.query(Role).order_by(Role.name).all()
        return {
            "roles": [
                {
                    "id": r.id,
                    "name": r.name,
                    "is_system": r.is_system,
                    "permissions": [{"id": p.id, "name": p.name} for p in r.permissions],
                }
                for r in roles
            ],
            "total_permissions": db.query(func.count(Permission.id)).scalar() or 0,
        }

    @staticmethod
    def assign(db: Session, auditor: Auditor, role_id: int, permission_ids: List[int]) -> Role:
        """Replace the role's entire grant set with ``permission_ids``."""
        role = db.query(Role).filter(Role.id == role_id).first()
        if not role:
            raise ResourceNotFoundError("Role not found")
        rbac_service.permissions_by_ids(db, permission_ids)
        mutation_guard.check_admin_permission_set(db, role, permission_ids)

        with transaction(db):
            rbac_service.replace_role_permissions(db, role.id, permission_ids)
            mutation_guard.verify_admin_complete(db, role)

        db.refresh(role)
        ids = sorted(set(permission_ids))
        auditor.record("ASSIGN_PERMISSIONS", "role", role.id, {"name": role.name, "permission_ids": ids})
        auditor.emit("permission:assigned", {"role_id": role.id, "permission_ids": ids})
        return role

    @staticmethod
    def api_route_permission_names(paths: Dict[str, Dict[str, Any]], prefix: str = "/api") -> List[str]:
        """Permission names for every operation in an OpenAPI ``paths`` map under ``prefix``."""
        names = set()
        for path, operations in paths.items():
            if not path.startswith(prefix):
                continue
            for method in operations:
                if method.upper() in ROUTE_METHODS:
                    names.add(route_permission_name(method, path))
        return sorted(names)

    @staticmethod
    def missing_route_permissions(db: Session, paths: Dict[str, Dict[str, Any]]) -> List[str]:
        existing = {name for (name,) in db.query(Permission.name).all()}
        return [n for n in PermissionService.api_route_permission_names(paths) if n not in existing]

    @staticmethod
    def create_missing_route_permissions(
        db: Session, auditor: Auditor, paths: Dict[str, Dict[str, Any]]
    ) -> List[str]:
        missing = PermissionService.missing_route_permissions(db, paths)
        if not missing:
            return []

        admin = rbac_service.get_admin_role(db)
        with transaction(db):
            for name in missing:
                PermissionService._add_permission(db, name, f"Auto-generated for {name}", admin)
            if admin is not None:
                mutation_guard.verify_admin_complete(db, admin)

        logger.info("Created %d route permissions", len(missing))
        auditor.record("CREATE_ROUTE_PERMISSIONS", "permission", None, {"names": missing})
        auditor.emit("permission:created", {"names": missing})
        return missing


permission_service = PermissionService()
