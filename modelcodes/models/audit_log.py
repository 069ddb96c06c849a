"""Audit log model for tracking changes."""
from datetime import datetime
from typing import Optional
from sqlalchemy import String, Integer, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from modelcodes.models.base import Base
from modelcodes.core.time import utc_now


class AuditLog(Base):
    """Audit log table for tracking code management actions."""
    __tablename__ = "audit_logs"

    log_id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)  # e.g., AllocateCode
    description: Mapped[str] = mapped_column(Text, nullable=False)
    entity_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # e.g., CodeUsageEntry
    entity_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    result: Mapped[str] = mapped_column(String(20), nullable=False, default="Success")
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
