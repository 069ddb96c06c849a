"""Code usage entry model: one concrete model code and its lifecycle flags."""
import enum
from datetime import datetime, date
from typing import Optional, TYPE_CHECKING
from sqlalchemy import String, Integer, Text, Boolean, Date, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from modelcodes.models.base import Base
from modelcodes.core.time import utc_now

if TYPE_CHECKING:
    from modelcodes.models.model_classification import ModelClassification
    from modelcodes.models.code_classification import CodeClassification


class OccupancyType(str, enum.Enum):
    """Why an allocated code is occupied."""
    PLANNING = "PLANNING"
    WORK_ORDER = "WORK_ORDER"
    PAUSE = "PAUSE"


class CodeUsageEntry(Base):
    """A model code.

    ``is_allocated`` and ``is_deleted`` are independent: soft-deleting keeps
    the allocation history and restoring only clears ``is_deleted``.
    """
    __tablename__ = "code_usage_entries"
    __table_args__ = (
        # At most one live row per composed code
        Index(
            "uq_code_usage_entries_model_live", "model", unique=True,
            postgresql_where=text("NOT is_deleted"),
            sqlite_where=text("is_deleted = 0"),
        ),
        Index("ix_code_usage_entries_model_type_number",
              "model_type", "classification_number"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Code components
    model: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    model_type: Mapped[str] = mapped_column(String(20), nullable=False)
    classification_number: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True,
        comment="Leading number of the code classification; NULL for 2-tier codes")
    actual_number: Mapped[str] = mapped_column(String(10), nullable=False)
    extension: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    model_classification_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("model_classifications.id", ondelete="RESTRICT"),
        nullable=False, index=True)
    code_classification_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("code_classifications.id", ondelete="RESTRICT"),
        nullable=True, index=True)

    # Product metadata
    product_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    occupancy_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    customer: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    factory: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    builder: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    requester: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    creation_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # State
    is_allocated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_reason: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    number_digits: Mapped[int] = mapped_column(
        Integer, nullable=False, default=2,
        comment="Configured digit width when the row was created")

    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now)

    model_classification: Mapped["ModelClassification"] = relationship(
        "ModelClassification")
    code_classification: Mapped[Optional["CodeClassification"]] = relationship(
        "CodeClassification")
