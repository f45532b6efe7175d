"""Role service — role CRUD, permission replacement, CSV bulk import."""

import csv
import io
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from employdex.core.exceptions import (
    ResourceConflictError,
    ResourceNotFoundError,
    ValidationError,
)
from employdex.db.session import transaction
from employdex.models import Role, User, UserRole
from employdex.services import mutation_guard, rbac_service
from employdex.services.audit_service import Auditor

logger = logging.getLogger("employdex.roles")

ROLE_CSV_HEADERS = ["name", "description", "permissions"]
ROLE_CSV_EXAMPLE = ["Editor", "Can edit users", "user_view;user_edit"]


class RoleService:
    """Role management guarded by the RBAC invariants."""

    @staticmethod
    def serialize(db: Session, role: Role, with_users: bool = False) -> Dict[str, Any]:
        data = {
            "id": role.id,
            "name": role.name,
            "description": role.description,
            "is_system": role.is_system,
            "permissions": [
                {"id": p.id, "name": p.name, "description": p.description, "created_at": p.created_at}
                for p in role.permissions
            ],
            "user_count": rbac_service.role_user_count(db, role.id),
            "created_at": role.created_at,
            "updated_at": role.updated_at,
        }
        if with_users:
            users = (
                db.query(User)
                .join(UserRole, UserRole.user_id == User.id)
                .filter(UserRole.role_id == role.id)
                .order_by(User.id)
                .limit(100)
                .all()
            )
            data["users"] = [
                {
                    "id": u.id,
                    "email": u.email,
                    "first_name": u.first_name,
                    "last_name": u.last_name,
                    "is_active": u.is_active,
                }
                for u in users
            ]
        return data

    @staticmethod
    def list_roles(db: Session) -> List[Role]:
        return db.query(Role).order_by(Role.name).all()

    @staticmethod
    def get_role(db: Session, role_id: int) -> Role:
        role = db.query(Role).filter(Role.id == role_id).first()
        if not role:
            raise ResourceNotFoundError("Role not found")
        return role

    @staticmethod
    def create_role(
        db: Session,
        auditor: Auditor,
        name: str,
        description: Optional[str] = None,
        permission_ids: Optional[List[int]] = None,
    ) -> Role:
        name = name.strip()
        if rbac_service.get_role_by_name(db, name):
            raise ResourceConflictError(f"Role '{name}' already exists")
        permission_ids = permission_ids or []

        with transaction(db):
            rbac_service.permissions_by_ids(db, permission_ids)
            role = Role(name=name, description=description, is_system=False)
            db.add(role)
            db.flush()
            rbac_service.replace_role_permissions(db, role.id, permission_ids)

        db.refresh(role)
        logger.info("Created role %s (%s)", role.name, role.id)
        auditor.record("CREATE_ROLE", "role", role.id, {"name": role.name, "permission_ids": sorted(permission_ids)})
        auditor.emit("role:created", {"role_id": role.id, "name": role.name})
        return role

    @staticmethod
    def update_role(
        db: Session,
        auditor: Auditor,
        role_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        permission_ids: Optional[List[int]] = None,
    ) -> Role:
        """Update a role; ``permission_ids`` replaces the whole grant set."""
        role = RoleService.get_role(db, role_id)
        new_name = name.strip() if name is not None else None
        mutation_guard.check_role_rename(role, new_name)
        if new_name and new_name != role.name and rbac_service.get_role_by_name(db, new_name):
            raise ResourceConflictError(f"Role '{new_name}' already exists")
        if permission_ids is not None:
            rbac_service.permissions_by_ids(db, permission_ids)
            mutation_guard.check_admin_permission_set(db, role, permission_ids)

        old = {"name": role.name, "description": role.description}
        with transaction(db):
            if new_name is not None:
                role.name = new_name
            if description is not None:
                role.description = description
            db.flush()
            if permission_ids is not None:
                rbac_service.replace_role_permissions(db, role.id, permission_ids)
                mutation_guard.verify_admin_complete(db, role)

        db.refresh(role)
        details = {"old": old, "new": {"name": role.name, "description": role.description}}
        if permission_ids is not None:
            details["permission_ids"] = sorted(set(permission_ids))
        auditor.record("UPDATE_ROLE", "role", role.id, details)
        auditor.emit("role:updated", {"role_id": role.id, "name": role.name})
        return role

    @staticmethod
    def delete_role(db: Session, auditor: Auditor, role_id: int) -> None:
        role = RoleService.get_role(db, role_id)
        mutation_guard.check_role_deletable(db, role)

        name = role.name
        with transaction(db):
            db.delete(role)

        logger.info("Deleted role %s (%s)", name, role_id)
        auditor.record("DELETE_ROLE", "role", role_id, {"name": name})
        auditor.emit("role:deleted", {"role_id": role_id, "name": name})

    @staticmethod
    def csv_template() -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(ROLE_CSV_HEADERS)
        writer.writerow(ROLE_CSV_EXAMPLE)
        return buffer.getvalue()

    @staticmethod
    def bulk_create(db: Session, auditor: Auditor, content: str) -> Dict[str, Any]:
        """Create one role per CSV row; a failing row does not stop the others."""
        reader = csv.DictReader(io.StringIO(content))
        if not reader.fieldnames or "name" not in [f.strip() for f in reader.fieldnames]:
            raise ValidationError("CSV must have a 'name' column", expected=ROLE_CSV_HEADERS)

        total = 0
        errors = []
        for line, row in enumerate(reader, start=2):
            total += 1
            row = {(k or "").strip(): (v or "").strip() for k, v in row.items()}
            try:
                if not row.get("name"):
                    raise ValidationError("Role name is required")
                permission_names = [p for p in row.get("permissions", "").split(";") if p.strip()]
                permissions = rbac_service.permissions_by_names(db, permission_names)
                RoleService.create_role(
                    db,
                    auditor,
                    row["name"],
                    row.get("description") or None,
                    [p.id for p in permissions],
                )
            except (ValidationError, ResourceConflictError) as e:
                errors.append({"row": line, "name": row.get("name"), "error": e.message})

        return {
            "total": total,
            "successful": total - len(errors),
            "failed": len(errors),
            "errors": errors,
        }


role_service = RoleService()
