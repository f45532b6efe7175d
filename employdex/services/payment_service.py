"""Payment service — QR code management and transaction tracking."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session, undefer

from employdex.core.config import settings
from employdex.core.exceptions import (
    ResourceConflictError,
    ResourceNotFoundError,
    ValidationError,
)
from employdex.db.session import transaction
from employdex.models import PaymentQrCode, PaymentTransaction
from employdex.services.audit_service import Auditor

logger = logging.getLogger("employdex.payment")

STATUS_PENDING = "pending"
STATUS_VERIFIED = "verified"


class PaymentService:
    """QR codes (at most one active) and the transactions paid against them."""

    # ---- QR codes ----
    @staticmethod
    def list_qr_codes(db: Session):
        return db.query(PaymentQrCode).order_by(PaymentQrCode.created_at.desc(), PaymentQrCode.id.desc()).all()

    @staticmethod
    def get_qr_code(db: Session, qr_id: int, with_image: bool = False) -> PaymentQrCode:
        query = db.query(PaymentQrCode)
        if with_image:
            query = query.options(undefer(PaymentQrCode.image_data))
        qr = query.filter(PaymentQrCode.id == qr_id).first()
        if not qr:
            raise ResourceNotFoundError("QR code not found")
        return qr

    @staticmethod
    def active_qr_code(db: Session) -> PaymentQrCode:
        qr = db.query(PaymentQrCode).filter(PaymentQrCode.is_active.is_(True)).first()
        if not qr:
            raise ResourceNotFoundError("No active QR code found")
        return qr

    @staticmethod
    def check_image(content_type: Optional[str], data: bytes) -> None:
        if not content_type or not content_type.startswith("image/"):
            raise ValidationError("Only image files are allowed")
        if not data:
            raise ValidationError("Image file is empty")
        max_bytes = settings.MAX_QR_IMAGE_MB * 1024 * 1024
        if len(data) > max_bytes:
            raise ValidationError(f"Image exceeds {settings.MAX_QR_IMAGE_MB} MB limit")

    @staticmethod
    def create_qr_code(
        db: Session,
        auditor: Auditor,
        name: str,
        payment_type: str,
        image: bytes,
        content_type: str,
        description: Optional[str] = None,
    ) -> PaymentQrCode:
        if not name or not name.strip():
            raise ValidationError("Name is required")
        PaymentService.check_image(content_type, image)

        with transaction(db):
            qr = PaymentQrCode(
                name=name.strip(),
                description=description,
                payment_type=payment_type or "upi",
                image_data=image,
                image_content_type=content_type,
                is_active=False,
            )
            db.add(qr)

        db.refresh(qr)
        auditor.record("CREATE_QR_CODE", "payment_qr_code", qr.id, {"name": qr.name})
        auditor.emit("payment:qr_created", {"qr_code_id": qr.id})
        return qr

    @staticmethod
    def update_qr_code(
        db: Session,
        auditor: Auditor,
        qr_id: int,
        changes: Dict[str, Any],
        image: Optional[bytes] = None,
        content_type: Optional[str] = None,
    ) -> PaymentQrCode:
        qr = PaymentService.get_qr_code(db, qr_id)
        if image is not None:
            PaymentService.check_image(content_type, image)

        with transaction(db):
            for field in ("name", "description", "payment_type"):
                if changes.get(field) is not None:
                    setattr(qr, field, changes[field])
            if image is not None:
                qr.image_data = image
                qr.image_content_type = content_type

        db.refresh(qr)
        auditor.record("UPDATE_QR_CODE", "payment_qr_code", qr.id, {"fields": sorted(k for k, v in changes.items() if v is not None)})
        auditor.emit("payment:qr_updated", {"qr_code_id": qr.id})
        return qr

    @staticmethod
    def delete_qr_code(db: Session, auditor: Auditor, qr_id: int) -> None:
        qr = PaymentService.get_qr_code(db, qr_id)
        in_use = db.query(PaymentTransaction).filter(PaymentTransaction.qr_code_id == qr.id).count()
        if in_use:
            raise ValidationError(
                "Cannot delete QR code that has transactions",
                transaction_count=in_use,
            )

        name = qr.name
        with transaction(db):
            db.delete(qr)

        auditor.record("DELETE_QR_CODE", "payment_qr_code", qr_id, {"name": name})
        auditor.emit("payment:qr_deleted", {"qr_code_id": qr_id})

    @staticmethod
    def activate_qr_code(db: Session, auditor: Auditor, qr_id: int) -> PaymentQrCode:
        """Deactivate every code, then activate this one, in one transaction."""
        qr = PaymentService.get_qr_code(db, qr_id)
        with transaction(db):
            db.query(PaymentQrCode).filter(PaymentQrCode.is_active.is_(True)).update(
                {PaymentQrCode.is_active: False}, synchronize_session=False
            )
            db.query(PaymentQrCode).filter(PaymentQrCode.id == qr.id).update(
                {PaymentQrCode.is_active: True}, synchronize_session=False
            )

        db.refresh(qr)
        auditor.record("ACTIVATE_QR_CODE", "payment_qr_code", qr.id, {"name": qr.name})
        auditor.emit("payment:qr_activated", {"qr_code_id": qr.id})
        return qr

    @staticmethod
    def deactivate_qr_code(db: Session, auditor: Auditor, qr_id: int) -> PaymentQrCode:
        qr = PaymentService.get_qr_code(db, qr_id)
        if not qr.is_active:
            raise ValidationError("QR code is already inactive")
        with transaction(db):
            qr.is_active = False

        db.refresh(qr)
        auditor.record("DEACTIVATE_QR_CODE", "payment_qr_code", qr.id, {"name": qr.name})
        auditor.emit("payment:qr_deactivated", {"qr_code_id": qr.id})
        return qr

    # ---- Transactions ----
    @staticmethod
    def create_transaction(db: Session, auditor: Auditor, user_id: int, data: Dict[str, Any]) -> PaymentTransaction:
        PaymentService.get_qr_code(db, data["qr_code_id"])
        ref = data["transaction_ref"].strip()
        if db.query(PaymentTransaction).filter(PaymentTransaction.transaction_ref == ref).first():
            raise ResourceConflictError("Transaction reference already exists")

        with transaction(db):
            tx = PaymentTransaction(
                transaction_ref=ref,
                amount=data["amount"],
                currency=data.get("currency") or "INR",
                status=STATUS_PENDING,
                notes=data.get("notes"),
                qr_code_id=data["qr_code_id"],
                user_id=user_id,
            )
            db.add(tx)

        db.refresh(tx)
        auditor.record("CREATE_TRANSACTION", "payment_transaction", tx.id, {"ref": ref, "amount": tx.amount})
        auditor.emit("payment:transaction_created", {"transaction_id": tx.id})
        return tx

    @staticmethod
    def list_transactions(
        db: Session,
        status_filter: Optional[str] = None,
        user_id: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        query = db.query(PaymentTransaction)
        if status_filter:
            query = query.filter(PaymentTransaction.status == status_filter)
        if user_id:
            query = query.filter(PaymentTransaction.user_id == user_id)

        total = query.count()
        items = (
            query.order_by(PaymentTransaction.created_at.desc(), PaymentTransaction.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            "transactions": items,
            "total": total,
            "page": page,
            "limit": limit,
            "pages": (total + limit - 1) // limit,
        }

    @staticmethod
    def get_transaction(db: Session, tx_id: int) -> PaymentTransaction:
        tx = db.query(PaymentTransaction).filter(PaymentTransaction.id == tx_id).first()
        if not tx:
            raise ResourceNotFoundError("Transaction not found")
        return tx

    @staticmethod
    def verify_transaction(db: Session, auditor: Auditor, tx_id: int) -> PaymentTransaction:
        tx = db.query(PaymentTransaction).filter(
            PaymentTransaction.id == tx_id,
            PaymentTransaction.status != STATUS_VERIFIED,
        ).first()
        if not tx:
            raise ResourceNotFoundError("Transaction not found or already verified")

        with transaction(db):
            tx.status = STATUS_VERIFIED
            tx.verified_by = auditor.user_id
            tx.verified_at = datetime.now(timezone.utc)

        db.refresh(tx)
        auditor.record("VERIFY_TRANSACTION", "payment_transaction", tx.id, {"ref": tx.transaction_ref})
        auditor.emit("payment:transaction_verified", {"transaction_id": tx.id})
        return tx


payment_service = PaymentService()
