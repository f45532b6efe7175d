"""Feature toggle service — gate checks and toggle CRUD."""

import logging
from typing import Any, Dict, List

from fastapi import Depends
from sqlalchemy.orm import Session

from employdex.core.exceptions import (
    FeatureDisabledError,
    ResourceConflictError,
    ResourceNotFoundError,
)
from employdex.db.session import get_db, transaction
from employdex.models import FeatureToggle
from employdex.services.audit_service import Auditor

logger = logging.getLogger("employdex.features")

PAYMENT_INTEGRATION = "payment_integration"


def is_enabled(db: Session, feature_name: str) -> bool:
    """A missing toggle counts as disabled."""
    toggle = db.query(FeatureToggle).filter(FeatureToggle.feature_name == feature_name).first()
    return bool(toggle and toggle.is_enabled)


class RequireFeature:
    """Dependency rejecting the request while ``feature_name`` is off.

    Declare it after the route's ``RequirePermission`` so authentication
    and permission failures are reported first.
    """

    def __init__(self, feature_name: str):
        self.feature_name = feature_name

    async def __call__(self, db: Session = Depends(get_db)) -> None:
        if not is_enabled(db, self.feature_name):
            raise FeatureDisabledError(self.feature_name)


class FeatureService:
    """CRUD for feature toggles; every change emits ``feature-toggle:<name>``."""

    @staticmethod
    def list_toggles(db: Session) -> List[FeatureToggle]:
        return db.query(FeatureToggle).order_by(FeatureToggle.feature_name).all()

    @staticmethod
    def get_by_name(db: Session, feature_name: str) -> FeatureToggle:
        toggle = db.query(FeatureToggle).filter(FeatureToggle.feature_name == feature_name).first()
        if not toggle:
            raise ResourceNotFoundError("Feature toggle not found")
        return toggle

    @staticmethod
    def get_by_id(db: Session, toggle_id: int) -> FeatureToggle:
        toggle = db.query(FeatureToggle).filter(FeatureToggle.id == toggle_id).first()
        if not toggle:
            raise ResourceNotFoundError("Feature toggle not found")
        return toggle

    @staticmethod
    def _announce(auditor: Auditor, action: str, toggle: FeatureToggle) -> None:
        payload = {"id": toggle.id, "feature_name": toggle.feature_name, "is_enabled": toggle.is_enabled}
        auditor.record(action, "feature_toggle", toggle.id, payload)
        auditor.emit(f"feature-toggle:{toggle.feature_name}", payload)

    @staticmethod
    def create_toggle(db: Session, auditor: Auditor, data: Dict[str, Any]) -> FeatureToggle:
        name = data["feature_name"].strip()
        if db.query(FeatureToggle).filter(FeatureToggle.feature_name == name).first():
            raise ResourceConflictError(f"Feature toggle '{name}' already exists")

        with transaction(db):
            toggle = FeatureToggle(
                feature_name=name,
                is_enabled=data.get("is_enabled", False),
                description=data.get("description"),
                feature=data.get("feature"),
                updated_by=auditor.user_id,
            )
            db.add(toggle)

        db.refresh(toggle)
        FeatureService._announce(auditor, "CREATE_FEATURE_TOGGLE", toggle)
        return toggle

    @staticmethod
    def switch(db: Session, auditor: Auditor, feature_name: str, is_enabled: bool) -> FeatureToggle:
        toggle = FeatureService.get_by_name(db, feature_name)
        with transaction(db):
            toggle.is_enabled = is_enabled
            toggle.updated_by = auditor.user_id

        db.refresh(toggle)
        logger.info("Feature %s %s", feature_name, "enabled" if is_enabled else "disabled")
        FeatureService._announce(auditor, "UPDATE_FEATURE_TOGGLE", toggle)
        return toggle

    @staticmethod
    def update_toggle(db: Session, auditor: Auditor, toggle_id: int, changes: Dict[str, Any]) -> FeatureToggle:
        toggle = FeatureService.get_by_id(db, toggle_id)
        new_name = changes.get("feature_name")
        if new_name and new_name != toggle.feature_name:
            if db.query(FeatureToggle).filter(FeatureToggle.feature_name == new_name).first():
                raise ResourceConflictError(f"Feature toggle '{new_name}' already exists")

        with transaction(db):
            for field in ("feature_name", "is_enabled", "description", "feature"):
                if changes.get(field) is not None:
                    setattr(toggle, field, changes[field])
            toggle.updated_by = auditor.user_id

        db.refresh(toggle)
        FeatureService._announce(auditor, "UPDATE_FEATURE_TOGGLE", toggle)
        return toggle

    @staticmethod
    def delete_toggle(db: Session, auditor: Auditor, toggle_id: int) -> None:
        toggle = FeatureService.get_by_id(db, toggle_id)
        payload = {"id": toggle.id, "feature_name": toggle.feature_name, "is_enabled": False}
        with transaction(db):
            db.delete(toggle)

        auditor.record("DELETE_FEATURE_TOGGLE", "feature_toggle", toggle_id, payload)
        auditor.emit(f"feature-toggle:{payload['feature_name']}", payload)


feature_service = FeatureService()
