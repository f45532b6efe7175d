"""Payment API router — QR codes and transactions.

Everything except ``/status`` sits behind the ``payment_integration``
feature toggle, checked after the caller's permissions.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from employdex.api.deps import get_auditor
from employdex.api.uploads import read_image_upload
from employdex.core.access import Claims
from employdex.core.security import RequirePermission, get_current_claims
from employdex.db.session import get_db
from employdex.schemas.schemas import (
    MessageResponse,
    QrCodeOut,
    TransactionCreateRequest,
    TransactionOut,
)
from employdex.services.audit_service import Auditor
from employdex.services.feature_service import PAYMENT_INTEGRATION, RequireFeature, is_enabled
from employdex.services.payment_service import payment_service

router = APIRouter(prefix="/payment", tags=["payment"])

payment_enabled = RequireFeature(PAYMENT_INTEGRATION)


@router.get("/status")
async def payment_status(db: Session = Depends(get_db)):
    """Whether the payment feature is switched on."""
    return {"enabled": is_enabled(db, PAYMENT_INTEGRATION)}


# ---- QR codes ----
@router.get("/qr-codes", response_model=List[QrCodeOut])
async def list_qr_codes(
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["payment_view"])),
    _feature: None = Depends(payment_enabled),
):
    return [QrCodeOut.from_qr(qr) for qr in payment_service.list_qr_codes(db)]


@router.get("/qr-codes/active/current", response_model=QrCodeOut)
async def active_qr_code(
    db: Session = Depends(get_db),
    claims: Claims = Depends(get_current_claims),
    _feature: None = Depends(payment_enabled),
):
    """The QR code customers should pay against right now."""
    return QrCodeOut.from_qr(payment_service.active_qr_code(db))


@router.get("/qr-codes/{qr_id}", response_model=QrCodeOut)
async def get_qr_code(
    qr_id: int,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["payment_view"])),
    _feature: None = Depends(payment_enabled),
):
    return QrCodeOut.from_qr(payment_service.get_qr_code(db, qr_id))


@router.get("/qr-codes/{qr_id}/image")
async def get_qr_code_image(
    qr_id: int,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["payment_view"])),
    _feature: None = Depends(payment_enabled),
):
    qr = payment_service.get_qr_code(db, qr_id, with_image=True)
    return Response(content=qr.image_data, media_type=qr.image_content_type)


@router.post("/qr-codes", response_model=QrCodeOut, status_code=201)
async def create_qr_code(
    name: str = Form(...),
    payment_type: str = Form("upi"),
    description: Optional[str] = Form(None),
    image: UploadFile = File(...),
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["payment_edit"])),
    _feature: None = Depends(payment_enabled),
    auditor: Auditor = Depends(get_auditor),
):
    data, content_type = await read_image_upload(image)
    qr = payment_service.create_qr_code(db, auditor, name, payment_type, data, content_type, description)
    return QrCodeOut.from_qr(qr)


@router.put("/qr-codes/{qr_id}", response_model=QrCodeOut)
async def update_qr_code(
    qr_id: int,
    name: Optional[str] = Form(None),
    payment_type: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["payment_edit"])),
    _feature: None = Depends(payment_enabled),
    auditor: Auditor = Depends(get_auditor),
):
    data, content_type = (None, None)
    if image is not None:
        data, content_type = await read_image_upload(image)
    changes = {"name": name, "payment_type": payment_type, "description": description}
    qr = payment_service.update_qr_code(db, auditor, qr_id, changes, data, content_type)
    return QrCodeOut.from_qr(qr)


@router.delete("/qr-codes/{qr_id}", response_model=MessageResponse)
async def delete_qr_code(
    qr_id: int,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["payment_delete"])),
    _feature: None = Depends(payment_enabled),
    auditor: Auditor = Depends(get_auditor),
):
    payment_service.delete_qr_code(db, auditor, qr_id)
    return MessageResponse(message="QR code deleted successfully")


@router.put("/qr-codes/{qr_id}/activate", response_model=QrCodeOut)
async def activate_qr_code(
    qr_id: int,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["payment_edit"])),
    _feature: None = Depends(payment_enabled),
    auditor: Auditor = Depends(get_auditor),
):
    """Make this the only active QR code."""
    return QrCodeOut.from_qr(payment_service.activate_qr_code(db, auditor, qr_id))


@router.put("/qr-codes/{qr_id}/deactivate", response_model=QrCodeOut)
async def deactivate_qr_code(
    qr_id: int,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["payment_edit"])),
    _feature: None = Depends(payment_enabled),
    auditor: Auditor = Depends(get_auditor),
):
    return QrCodeOut.from_qr(payment_service.deactivate_qr_code(db, auditor, qr_id))


# ---- Transactions ----
@router.post("/transactions", response_model=TransactionOut, status_code=201)
async def create_transaction(
    body: TransactionCreateRequest,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["payment_create"])),
    _feature: None = Depends(payment_enabled),
    auditor: Auditor = Depends(get_auditor),
):
    tx = payment_service.create_transaction(db, auditor, claims.id, body.model_dump())
    return TransactionOut.from_transaction(tx)


@router.get("/transactions")
async def list_transactions(
    status: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["payment_view"])),
    _feature: None = Depends(payment_enabled),
):
    result = payment_service.list_transactions(db, status, user_id, page, limit)
    result["transactions"] = [TransactionOut.from_transaction(tx) for tx in result["transactions"]]
    return result


@router.get("/transactions/{tx_id}", response_model=TransactionOut)
async def get_transaction(
    tx_id: int,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["payment_view"])),
    _feature: None = Depends(payment_enabled),
):
    return TransactionOut.from_transaction(payment_service.get_transaction(db, tx_id))


@router.put("/transactions/{tx_id}/verify", response_model=TransactionOut)
async def verify_transaction(
    tx_id: int,
    db: Session = Depends(get_db),
    claims: Claims = Depends(RequirePermission(["payment_edit"])),
    _feature: None = Depends(payment_enabled),
    auditor: Auditor = Depends(get_auditor),
):
    return TransactionOut.from_transaction(payment_service.verify_transaction(db, auditor, tx_id))
