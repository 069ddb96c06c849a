"""Model classification (product line) model."""
from datetime import datetime
from typing import List, TYPE_CHECKING
from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from modelcodes.models.base import Base
from modelcodes.core.time import utc_now

if TYPE_CHECKING:
    from modelcodes.models.product_type import ProductType
    from modelcodes.models.code_classification import CodeClassification


class ModelClassification(Base):
    """A product line identified by its model type prefix, e.g. ``SLU-``.

    ``has_code_classification`` selects the 3-tier structure, where codes are
    grouped under numbered code classifications and pre-allocated in bulk.
    Without it codes attach directly to the model classification (2-tier).
    """
    __tablename__ = "model_classifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    type: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    product_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("product_types.id", ondelete="RESTRICT"),
        nullable=False, index=True)
    has_code_classification: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now)

    product_type: Mapped["ProductType"] = relationship(
        "ProductType", back_populates="model_classifications")
    code_classifications: Mapped[List["CodeClassification"]] = relationship(
        "CodeClassification", back_populates="model_classification",
        order_by="CodeClassification.code"
    )
