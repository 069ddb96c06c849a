"""Pre-allocation log model."""
from datetime import datetime
from typing import Optional
from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from modelcodes.models.base import Base
from modelcodes.core.time import utc_now


class CodePreAllocationLog(Base):
    """Write-once record of one pre-allocation batch."""
    __tablename__ = "code_pre_allocation_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    model_classification_id: Mapped[int] = mapped_column(Integer, nullable=False)
    code_classification_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    model_type: Mapped[str] = mapped_column(String(100), nullable=False)
    classification_number: Mapped[str] = mapped_column(String(100), nullable=False)
    allocation_count: Mapped[int] = mapped_column(Integer, nullable=False)
    skipped_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    number_digits: Mapped[int] = mapped_column(Integer, nullable=False)
    start_code: Mapped[str] = mapped_column(String(100), nullable=False)
    end_code: Mapped[str] = mapped_column(String(100), nullable=False)
    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
