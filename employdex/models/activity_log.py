"""Activity log model — append-only."""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, func
from employdex.db.base import Base


class ActivityLog(Base):
    """Audit trail of logins, mutations, and server errors.

    This table is APPEND-ONLY: rows are never updated or deleted by the
    application. Entries survive deletion of the acting user.
    """
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(100), nullable=False, index=True)  # e.g. "UPDATE_ROLE"
    entity = Column(String(50), nullable=False, index=True)  # role, user, permission, ...
    entity_id = Column(String(100), nullable=True)
    details_json = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
