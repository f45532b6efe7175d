"""Feature toggle API router."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from employdex.api.deps import get_auditor
from employdex.core.access import Claims
from employdex.core.security import RequirePermission
from employdex.db.session import get_db
from employdex.schemas.schemas import (
    FeatureToggleCreateRequest,
    FeatureToggleOut,
    FeatureToggleSwitchRequest,
    FeatureToggleUpdateRequest,
    MessageResponse,
)
from employdex.services.audit_service import Auditor
from employdex.services.feature_service import feature_service

router = APIRouter(prefix="/feature-toggles", tags=["feature toggles"])


@router.get("/", response_model=List[FeatureToggleOut])
async def list_toggles(
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["feature_toggle_view"])),
):
    return feature_service.list_toggles(db)


@router.patch("/update", response_model=FeatureToggleOut)
async def switch_toggle(
    body: FeatureToggleSwitchRequest,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["feature_toggle_edit"])),
    auditor: Auditor = Depends(get_auditor),
):
    """Turn a toggle on or off by name."""
    return feature_service.switch(db, auditor, body.feature_name, body.is_enabled)


@router.get("/{feature_name}", response_model=FeatureToggleOut)
async def get_toggle(
    feature_name: str,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["feature_toggle_view"])),
):
    return feature_service.get_by_name(db, feature_name)


@router.post("/", response_model=FeatureToggleOut, status_code=201)
async def create_toggle(
    body: FeatureToggleCreateRequest,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["feature_toggle_edit"])),
    auditor: Auditor = Depends(get_auditor),
):
    return feature_service.create_toggle(db, auditor, body.model_dump())


@router.put("/{toggle_id}", response_model=FeatureToggleOut)
async def update_toggle(
    toggle_id: int,
    body: FeatureToggleUpdateRequest,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["feature_toggle_edit"])),
    auditor: Auditor = Depends(get_auditor),
):
    return feature_service.update_toggle(db, auditor, toggle_id, body.model_dump(exclude_unset=True))


@router.delete("/{toggle_id}", response_model=MessageResponse)
async def delete_toggle(
    toggle_id: int,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["feature_toggle_edit"])),
    auditor: Auditor = Depends(get_auditor),
):
    feature_service.delete_toggle(db, auditor, toggle_id)
    return MessageResponse(message="Feature toggle deleted")
