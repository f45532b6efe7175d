"""Health and database status API router."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from employdex.core.access import Claims
from employdex.core.security import RequirePermission
from employdex.db.session import get_db
from employdex.models import Permission, Role, User

logger = logging.getLogger("employdex.health")

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Liveness probe."""
    return {"status": "ok"}


@router.get("/database/status")
async def database_status(
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["permission_view"])),
):
    """Database connectivity plus row counts of the RBAC tables."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Database status check failed: %s", e)
        return {"status": "error", "database": "unreachable"}

    return {
        "status": "ok",
        "database": db.get_bind().dialect.name,
        "users": db.query(User).count(),
        "roles": db.query(Role).count(),
        "permissions": db.query(Permission).count(),
    }
