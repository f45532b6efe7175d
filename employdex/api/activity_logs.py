"""Activity log API router."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from employdex.core.access import Claims
from employdex.core.security import RequirePermission
from employdex.db.session import get_db
from employdex.services.audit_service import audit_service

router = APIRouter(prefix="/logging", tags=["logging"])

# Log readers: the activity_view permission, or one of these roles.
require_log_reader = RequirePermission(["activity_view"], any_of_roles=["Admin", "full_access"])


@router.get("/activity")
async def get_activity_logs(
    action: Optional[str] = Query(None),
    entity: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    claims: Claims = Depends(require_log_reader),
):
    """Query activity logs, newest first."""
    return audit_service.query_logs(db, action, entity, user_id, start_date, end_date, page, limit)


@router.get("/actions")
async def get_actions(
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["permission_view"])),
):
    return {"actions": audit_service.distinct_actions(db)}


@router.get("/entities")
async def get_entities(
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["permission_view"])),
):
    return {"entities": audit_service.distinct_entities(db)}


@router.get("/stats")
async def get_stats(
    db: Session = Depends(get_db),
    claims: Claims = Depends(require_log_reader),
):
    return audit_service.stats(db)
