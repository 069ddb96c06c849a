"""Code classification model (third tier)."""
from datetime import datetime
from typing import Optional, TYPE_CHECKING
from sqlalchemy import String, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from modelcodes.models.base import Base
from modelcodes.core.time import utc_now
from modelcodes.core.code_format import extract_classification_number

if TYPE_CHECKING:
    from modelcodes.models.model_classification import ModelClassification


class CodeClassification(Base):
    """A numbered group of codes under a 3-tier model classification.

    ``code`` has the form ``"<int>-<label>"`` (e.g. ``"1-内层"``); the leading
    integer becomes the classification number of every code in the group.
    """
    __tablename__ = "code_classifications"
    __table_args__ = (
        UniqueConstraint("model_classification_id", "code",
                         name="uq_code_classifications_parent_code"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    model_classification_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("model_classifications.id", ondelete="RESTRICT"),
        nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    model_classification: Mapped["ModelClassification"] = relationship(
        "ModelClassification", back_populates="code_classifications")

    @property
    def classification_number(self) -> Optional[int]:
        return extract_classification_number(self.code)
