"""Model classification schemas."""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import List, Optional
from modelcodes.schemas.product_type import ProductTypeResponse


class ModelClassificationBase(BaseModel):
    """Base schema for a model classification (a model type prefix such as "SLU-")."""
    type: str = Field(..., min_length=1, max_length=50)
    description: List[str] = []
    has_code_classification: bool = True  # False for 2-tier model types


class ModelClassificationCreate(ModelClassificationBase):
    product_type_id: int


class ModelClassificationUpdate(BaseModel):
    type: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[List[str]] = None
    has_code_classification: Optional[bool] = None
    product_type_id: Optional[int] = None


class ModelClassificationResponse(ModelClassificationBase):
    id: int
    product_type_id: int
    created_at: datetime
    updated_at: datetime
    product_type: Optional[ProductTypeResponse] = None

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())
