"""Batch operation schemas."""
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from modelcodes.core.results import ErrorCode
from modelcodes.models.code_usage import OccupancyType


class BatchIdsRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1)


class BatchSoftDeleteRequest(BatchIdsRequest):
    reason: Optional[str] = Field(None, max_length=200)


class OccupancyTypeItem(BaseModel):
    id: int
    occupancy_type: OccupancyType


class BatchOccupancyTypeRequest(BaseModel):
    items: List[OccupancyTypeItem] = Field(..., min_length=1)


class BatchProductTypeRequest(BaseModel):
    codes: List[str] = Field(..., min_length=1)


class BatchItemResponse(BaseModel):
    item: Any
    success: bool
    message: str = ""
    error_code: Optional[ErrorCode] = None

    model_config = ConfigDict(from_attributes=True)


class BatchOperationResponse(BaseModel):
    total: int
    success_count: int
    failed_count: int
    message: str = ""
    items: List[BatchItemResponse] = []

    model_config = ConfigDict(from_attributes=True)
