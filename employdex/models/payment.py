"""Payment QR code and transaction models."""

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Float, ForeignKey, LargeBinary, func
)
from sqlalchemy.orm import deferred, relationship
from employdex.db.base import Base


class PaymentQrCode(Base):
    """Uploaded payment QR image; at most one is active at a time."""
    __tablename__ = "payment_qr_codes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    payment_type = Column(String(50), nullable=False, default="upi")
    image_data = deferred(Column(LargeBinary, nullable=False))
    image_content_type = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


class PaymentTransaction(Base):
    """Payment reported against a QR code, pending until verified."""
    __tablename__ = "payment_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_ref = Column(String(100), unique=True, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    status = Column(String(20), nullable=False, default="pending", index=True)  # pending, verified
    notes = Column(Text, nullable=True)
    qr_code_id = Column(Integer, ForeignKey("payment_qr_codes.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    verified_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    verified_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    qr_code = relationship("PaymentQrCode", lazy="joined")
    user = relationship("User", foreign_keys=[user_id], lazy="joined")
