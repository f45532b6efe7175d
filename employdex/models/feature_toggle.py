"""Feature toggle model."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, func
from employdex.db.base import Base


class FeatureToggle(Base):
    """Named on/off switch gating a feature's routes."""
    __tablename__ = "feature_toggles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    feature_name = Column(String(100), unique=True, nullable=False, index=True)
    is_enabled = Column(Boolean, default=False, nullable=False)
    description = Column(String(255), nullable=True)
    feature = Column(String(100), nullable=True)  # grouping label, e.g. "payment"
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
