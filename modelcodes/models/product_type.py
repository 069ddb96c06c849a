"""Product type model."""
from datetime import datetime
from typing import List, TYPE_CHECKING
from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from modelcodes.models.base import Base
from modelcodes.core.time import utc_now

if TYPE_CHECKING:
    from modelcodes.models.model_classification import ModelClassification


class ProductType(Base):
    """Top-level product grouping (e.g. PCB, FPC)."""
    __tablename__ = "product_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    model_classifications: Mapped[List["ModelClassification"]] = relationship(
        "ModelClassification", back_populates="product_type",
        order_by="ModelClassification.type"
    )
