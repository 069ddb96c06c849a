"""Code usage schemas."""
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from modelcodes.models.code_usage import OccupancyType


class CodeMetadata(BaseModel):
    """Editable product metadata attached to an allocated code."""
    product_name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    occupancy_type: Optional[OccupancyType] = None
    customer: Optional[str] = Field(None, max_length=100)
    factory: Optional[str] = Field(None, max_length=100)
    builder: Optional[str] = Field(None, max_length=100)
    requester: Optional[str] = Field(None, max_length=100)
    creation_date: Optional[date] = None


class AllocateCodeRequest(CodeMetadata):
    extension: Optional[str] = None


class ManualCodeCreate(CodeMetadata):
    model_classification_id: int
    number_part: str
    extension: Optional[str] = None

    model_config = ConfigDict(protected_namespaces=())


class ManualCodeValidateRequest(BaseModel):
    model_type: str
    number_part: str
    extension: Optional[str] = None

    model_config = ConfigDict(protected_namespaces=())


class ManualCodeValidateResponse(BaseModel):
    model: str
    available: bool
    message: str

    model_config = ConfigDict(protected_namespaces=())


class CodeUsageCreate(CodeMetadata):
    model_type: str
    classification_number: Optional[int] = Field(None, ge=0)
    actual_number: str
    extension: Optional[str] = None

    model_config = ConfigDict(protected_namespaces=())


class CodeUsageUpdate(CodeMetadata):
    extension: Optional[str] = None


class OccupancyTypeUpdate(BaseModel):
    occupancy_type: OccupancyType


class SoftDeleteRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=200)


class CodeUsageResponse(BaseModel):
    id: int
    model: str
    model_type: str
    classification_number: Optional[int] = None
    actual_number: str
    extension: Optional[str] = None
    model_classification_id: int
    code_classification_id: Optional[int] = None
    product_name: Optional[str] = None
    description: Optional[str] = None
    occupancy_type: Optional[str] = None
    customer: Optional[str] = None
    factory: Optional[str] = None
    builder: Optional[str] = None
    requester: Optional[str] = None
    creation_date: Optional[date] = None
    is_allocated: bool
    is_deleted: bool
    deleted_reason: Optional[str] = None
    number_digits: int
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())


class CodeUsageListResponse(BaseModel):
    total: int
    items: List[CodeUsageResponse]


class ManualCodeResponse(BaseModel):
    outcome: str  # CREATED or UPDATED
    message: str
    entry: CodeUsageResponse


class CodeAvailabilityResponse(BaseModel):
    model: str
    available: bool

    model_config = ConfigDict(protected_namespaces=())


class CodeStatsResponse(BaseModel):
    total: int
    allocated: int
    available: int
