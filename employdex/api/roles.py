"""Role management API router."""

from typing import List

from fastapi import APIRouter, Depends, File, UploadFile
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
    RoleCreateRequest,
    RoleDetailOut,
    RoleOut,
    RoleUpdateRequest,
)
from employdex.services.audit_service import Auditor
from employdex.services.role_service import role_service

router = APIRouter(prefix="/role_management", tags=["role management"])


@router.get("/roles", response_model=List[RoleOut])
async def list_roles(
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["role_view"])),
):
    """All roles with their permissions and user counts."""
    return [role_service.serialize(db, r) for r in role_service.list_roles(db)]


@router.get("/roles/template")
async def download_template(
    claims: Claims = Depends(RequirePermission(["role_create"])),
):
    return Response(
        content=role_service.csv_template(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="role_template.csv"'},
    )


@router.post("/roles/bulk", response_model=BulkUploadResult)
async def bulk_upload(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["role_create"])),
    auditor: Auditor = Depends(get_auditor),
):
    content = await read_csv_upload(file)
    return role_service.bulk_create(db, auditor, content)


@router.get("/roles/{role_id}", response_model=RoleDetailOut)
async def get_role(
    role_id: int,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["role_view"])),
):
    return role_service.serialize(db, role_service.get_role(db, role_id), with_users=True)


@router.post("/roles", response_model=RoleOut, status_code=201)
async def create_role(
    body: RoleCreateRequest,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["role_create"])),
    auditor: Auditor = Depends(get_auditor),
):
    role = role_service.create_role(db, auditor, body.name, body.description, body.permission_ids)
    return role_service.serialize(db, role)


@router.put("/roles/{role_id}", response_model=RoleOut)
async def update_role(
    role_id: int,
    body: RoleUpdateRequest,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["role_edit"])),
    auditor: Auditor = Depends(get_auditor),
):
    """Update a role. ``permission_ids``, when present, replaces every grant."""
    role = role_service.update_role(
        db, auditor, role_id, body.name, body.description, body.permission_ids
    )
    return role_service.serialize(db, role)


@router.delete("/roles/{role_id}", response_model=MessageResponse)
async def delete_role(
    role_id: int,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["role_delete"])),
    auditor: Auditor = Depends(get_auditor),
):
    role_service.delete_role(db, auditor, role_id)
    return MessageResponse(message="Role deleted successfully")
