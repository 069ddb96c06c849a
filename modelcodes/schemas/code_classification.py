"""Code classification schemas."""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional


class CodeClassificationBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)  # "<number>-<label>", e.g. "1-内层"
    name: str = Field(..., min_length=1, max_length=100)


class CodeClassificationCreate(CodeClassificationBase):
    model_classification_id: int

    model_config = ConfigDict(protected_namespaces=())


class CodeClassificationUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=100)


class CodeClassificationResponse(CodeClassificationBase):
    id: int
    model_classification_id: int
    classification_number: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())


class PreAllocationResponse(BaseModel):
    generated_count: int
    skipped_count: int
    first_code: Optional[str] = None
    last_code: Optional[str] = None
    number_digits: int


class CodeClassificationDeleteResponse(BaseModel):
    message: str
    removed_entries: int
