"""Permission management API router."""

from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from employdex.api.deps import get_auditor
from employdex.core.access import Claims
from employdex.core.security import RequirePermission
from employdex.db.session import get_db
from employdex.schemas.schemas import (
    AssignPermissionsRequest,
    PermissionCreateRequest,
    PermissionDetailOut,
    PermissionUpdateRequest,
    RoleOut,
)
from employdex.services.audit_service import Auditor
from employdex.services.permission_service import permission_service
from employdex.services.role_service import role_service

router = APIRouter(prefix="/permission_management", tags=["permission management"])


@router.get("/permissions", response_model=List[PermissionDetailOut])
async def list_permissions(
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["permission_view"])),
):
    return permission_service.list_permissions(db)


@router.get("/permissions/{permission_id}", response_model=PermissionDetailOut)
async def get_permission(
    permission_id: int,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["permission_view"])),
):
    return permission_service.serialize(permission_service.get_permission(db, permission_id))


@router.post("/permissions", response_model=PermissionDetailOut, status_code=201)
async def create_permission(
    body: PermissionCreateRequest,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["permission_assign"])),
    auditor: Auditor = Depends(get_auditor),
):
    """Add a permission to the catalog; Admin is granted it immediately."""
    permission = permission_service.create_permission(db, auditor, body.name, body.description)
    return permission_service.serialize(permission)


@router.put("/permissions/{permission_id}", response_model=PermissionDetailOut)
async def update_permission(
    permission_id: int,
    body: PermissionUpdateRequest,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["permission_assign"])),
    auditor: Auditor = Depends(get_auditor),
):
    permission = permission_service.update_description(db, auditor, permission_id, body.description)
    return permission_service.serialize(permission)


@router.get("/roles-permissions")
async def roles_permissions(
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["permission_view"])),
):
    return permission_service.roles_with_permissions(db)


@router.post("/assign", response_model=RoleOut)
async def assign_permissions(
    body: AssignPermissionsRequest,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["permission_assign"])),
    auditor: Auditor = Depends(get_auditor),
):
    """Replace a role's whole permission set."""
    role = permission_service.assign(db, auditor, body.role_id, body.permission_ids)
    return role_service.serialize(db, role)


@router.get("/missing-routes")
async def missing_routes(
    request: Request,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["permission_view"])),
):
    missing = permission_service.missing_route_permissions(db, request.app.openapi()["paths"])
    return {"missing": missing, "count": len(missing)}


@router.post("/create-missing-routes")
async def create_missing_routes(
    request: Request,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["permission_assign"])),
    auditor: Auditor = Depends(get_auditor),
):
    paths = request.app.openapi()["paths"]
    created = permission_service.create_missing_route_permissions(db, auditor, paths)
    return {"created": created, "count": len(created)}
