"""User management API router."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from employdex.api.deps import get_auditor
from employdex.api.uploads import read_csv_upload
from employdex.core.access import Claims
from employdex.core.security import RequirePermission
from employdex.db.session import get_db
from employdex.schemas.schemas import (
    BulkUploadResult,
    MessageResponse,
    UserCreateRequest,
    UserListResponse,
    UserOut,
    UserStatusRequest,
    UserUpdateRequest,
)
from employdex.services.audit_service import Auditor
from employdex.services.user_service import user_service

router = APIRouter(prefix="/user_management", tags=["user management"])


@router.get("/users", response_model=UserListResponse)
async def list_users(
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    role: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["user_view"])),
):
    result = user_service.list_users(db, is_active, search, role, page, limit)
    result["users"] = [UserOut.from_user(u) for u in result["users"]]
    return result


@router.get("/users/template")
async def download_template(
    claims: Claims = Depends(RequirePermission(["user_create"])),
):
    """CSV header plus one example row for bulk upload."""
    return Response(
        content=user_service.csv_template(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="user_template.csv"'},
    )


@router.post("/users/bulk", response_model=BulkUploadResult)
async def bulk_upload(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["user_create"])),
    auditor: Auditor = Depends(get_auditor),
):
    content = await read_csv_upload(file)
    return user_service.bulk_create(db, auditor, content)


@router.post("/users", response_model=UserOut, status_code=201)
async def create_user(
    body: UserCreateRequest,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["user_create"])),
    auditor: Auditor = Depends(get_auditor),
):
    user = user_service.create_user(db, auditor, **body.model_dump())
    return UserOut.from_user(user)


@router.get("/users/{user_id}", response_model=UserOut)
async def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["user_view"])),
):
    return UserOut.from_user(user_service.get_user(db, user_id))


@router.put("/users/{user_id}", response_model=UserOut)
async def update_user(
    user_id: int,
    body: UserUpdateRequest,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["user_edit"])),
    auditor: Auditor = Depends(get_auditor),
):
    """Update a user; a given ``roles`` list replaces all assignments."""
    user = user_service.update_user(db, auditor, user_id, body.model_dump(exclude_unset=True))
    return UserOut.from_user(user)


@router.patch("/users/{user_id}/status", response_model=UserOut)
async def set_user_status(
    user_id: int,
    body: UserStatusRequest,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["user_edit"])),
    auditor: Auditor = Depends(get_auditor),
):
    return UserOut.from_user(user_service.set_status(db, auditor, user_id, body.is_active))


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["user_delete"])),
    auditor: Auditor = Depends(get_auditor),
):
    user_service.delete_user(db, auditor, user_id)
    return MessageResponse(message="User deleted successfully")
