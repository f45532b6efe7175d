"""User service — user CRUD, status changes, CSV bulk import."""

import csv
import io
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from employdex.core.exceptions import (
    ResourceConflictError,
    ResourceNotFoundError,
    ValidationError,
)
from employdex.core.security import hash_password
from employdex.db.session import transaction
from employdex.models import DEFAULT_ROLE, Role, User, UserRole
from employdex.schemas.schemas import check_email, check_mobile, check_password_strength
from employdex.services import mutation_guard, rbac_service
from employdex.services.audit_service import Auditor

logger = logging.getLogger("employdex.users")

USER_CSV_HEADERS = ["firstName", "lastName", "email", "mobileNumber", "password", "roles", "isActive"]
USER_CSV_EXAMPLE = ["Jane", "Doe", "jane.doe@example.com", "9876543210", "Passw0rd!", "User;Editor", "true"]
TRUE_VALUES = {"true", "1", "yes", "y", "active"}
FALSE_VALUES = {"false", "0", "no", "n", "inactive"}


def _parse_bool(value: str, default: bool = True) -> bool:
    value = (value or "").strip().lower()
    if not value:
        return default
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ValidationError(f"Invalid isActive value '{value}'")


class UserService:
    """User management guarded by the primary-administrator invariants."""

    @staticmethod
    def get_user(db: Session, user_id: int) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ResourceNotFoundError("User not found")
        return user

    @staticmethod
    def list_users(
        db: Session,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
        role: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        query = db.query(User)
        if is_active is not None:
            query = query.filter(User.is_active == is_active)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                    User.email.ilike(pattern),
                )
            )
        if role:
            query = (
                query.join(UserRole, UserRole.user_id == User.id)
                .join(Role, Role.id == UserRole.role_id)
                .filter(Role.name == role)
            )

        total = query.count()
        users = (
            query.order_by(User.created_at.desc(), User.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            "users": users,
            "total": total,
            "page": page,
            "limit": limit,
            "pages": (total + limit - 1) // limit,
        }

    @staticmethod
    def _ensure_unique(db: Session, email: Optional[str], mobile: Optional[str], exclude_id: Optional[int] = None):
        conditions = []
        if email:
            conditions.append(User.email == email)
        if mobile:
            conditions.append(User.mobile_number == mobile)
        if not conditions:
            return
        query = db.query(User).filter(or_(*conditions))
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        existing = query.first()
        if existing:
            field = "email" if email and existing.email == email else "mobile number"
            raise ResourceConflictError(f"A user with this {field} already exists")

    @staticmethod
    def create_user(
        db: Session,
        auditor: Auditor,
        mobile_number: str,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        roles: Optional[List[str]] = None,
        is_active: bool = True,
        action: str = "CREATE_USER",
    ) -> User:
        """Create a user; with no roles given, the default "User" role is assigned."""
        UserService._ensure_unique(db, email, mobile_number)
        role_objs = rbac_service.roles_by_names(db, roles or [DEFAULT_ROLE])

        with transaction(db):
            user = User(
                mobile_number=mobile_number,
                email=email,
                hashed_password=hash_password(password),
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                is_active=is_active,
            )
            db.add(user)
            db.flush()
            rbac_service.replace_user_roles(db, user.id, [r.id for r in role_objs])

        db.refresh(user)
        logger.info("Created user %s (%s)", user.email, user.id)
        auditor.record(action, "user", user.id, {"email": user.email, "roles": user.role_names})
        auditor.emit("user:created", {"user_id": user.id, "email": user.email})
        return user

    @staticmethod
    def update_user(db: Session, auditor: Auditor, user_id: int, changes: Dict[str, Any]) -> User:
        """Apply the given fields; ``roles`` replaces the whole assignment set."""
        user = UserService.get_user(db, user_id)
        UserService._ensure_unique(db, changes.get("email"), changes.get("mobile_number"), exclude_id=user.id)

        role_ids = None
        primary_id = rbac_service.primary_admin_id(db)
        if changes.get("roles") is not None:
            role_ids = [r.id for r in rbac_service.roles_by_names(db, changes["roles"])]
            mutation_guard.check_primary_admin_keeps_admin(db, user, role_ids, primary_id)
        if changes.get("is_active") is not None:
            mutation_guard.check_primary_admin_stays_active(db, user, changes["is_active"])

        with transaction(db):
            for field in ("mobile_number", "email", "first_name", "last_name", "is_active"):
                if changes.get(field) is not None:
                    setattr(user, field, changes[field])
            if changes.get("password"):
                user.hashed_password = hash_password(changes["password"])
            db.flush()
            if role_ids is not None:
                rbac_service.replace_user_roles(db, user.id, role_ids)
                mutation_guard.check_primary_admin_keeps_admin(
                    db, user, rbac_service.user_role_ids(db, user.id), primary_id
                )

        db.refresh(user)
        changed = sorted(k for k, v in changes.items() if v is not None and k != "password")
        if changes.get("password"):
            changed.append("password")
        auditor.record("UPDATE_USER", "user", user.id, {"fields": changed, "roles": user.role_names})
        auditor.emit("user:updated", {"user_id": user.id})
        return user

    @staticmethod
    def set_status(db: Session, auditor: Auditor, user_id: int, is_active: bool) -> User:
        user = UserService.get_user(db, user_id)
        mutation_guard.check_primary_admin_stays_active(db, user, is_active)
        with transaction(db):
            user.is_active = is_active

        db.refresh(user)
        action = "ACTIVATE_USER" if is_active else "DEACTIVATE_USER"
        auditor.record(action, "user", user.id, {"is_active": is_active})
        auditor.emit("user:status_changed", {"user_id": user.id, "is_active": is_active})
        return user

    @staticmethod
    def delete_user(db: Session, auditor: Auditor, user_id: int) -> None:
        user = UserService.get_user(db, user_id)
        mutation_guard.check_user_deletable(db, user)

        email = user.email
        with transaction(db):
            db.delete(user)

        logger.info("Deleted user %s (%s)", email, user_id)
        auditor.record("DELETE_USER", "user", user_id, {"email": email})
        auditor.emit("user:deleted", {"user_id": user_id, "email": email})

    @staticmethod
    def csv_template() -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(USER_CSV_HEADERS)
        writer.writerow(USER_CSV_EXAMPLE)
        return buffer.getvalue()

    @staticmethod
    def bulk_create(db: Session, auditor: Auditor, content: str) -> Dict[str, Any]:
        """Create one user per CSV row; a failing row does not stop the others."""
        reader = csv.DictReader(io.StringIO(content))
        headers = [f.strip() for f in (reader.fieldnames or [])]
        missing = [h for h in ("firstName", "lastName", "email", "mobileNumber", "password") if h not in headers]
        if missing:
            raise ValidationError("CSV is missing required columns", missing=missing, expected=USER_CSV_HEADERS)

        total = 0
        errors = []
        for line, row in enumerate(reader, start=2):
            total += 1
            row = {(k or "").strip(): (v or "").strip() for k, v in row.items()}
            try:
                try:
                    email = check_email(row.get("email", ""))
                    mobile = check_mobile(row.get("mobileNumber", ""))
                    password = check_password_strength(row.get("password", ""))
                except ValueError as e:
                    raise ValidationError(str(e))
                if not row.get("firstName") or not row.get("lastName"):
                    raise ValidationError("First and last name are required")
                roles = [r for r in row.get("roles", "").split(";") if r.strip()]
                UserService.create_user(
                    db,
                    auditor,
                    mobile_number=mobile,
                    email=email,
                    password=password,
                    first_name=row["firstName"],
                    last_name=row["lastName"],
                    roles=roles or None,
                    is_active=_parse_bool(row.get("isActive", "")),
                )
            except (ValidationError, ResourceConflictError) as e:
                errors.append({"row": line, "email": row.get("email"), "error": e.message})

        return {
            "total": total,
            "successful": total - len(errors),
            "failed": len(errors),
            "errors": errors,
        }


user_service = UserService()
