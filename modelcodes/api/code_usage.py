"""Code usage routes."""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from modelcodes.api.responses import unwrap
from modelcodes.core.code_format import compose_model
from modelcodes.core.database import get_db
from modelcodes.core.deps import Actor, get_current_actor
from modelcodes.models.code_usage import OccupancyType
from modelcodes.schemas.code_usage import (
    AllocateCodeRequest,
    CodeAvailabilityResponse,
    CodeStatsResponse,
    CodeUsageCreate,
    CodeUsageListResponse,
    CodeUsageResponse,
    CodeUsageUpdate,
    ManualCodeCreate,
    ManualCodeResponse,
    ManualCodeValidateRequest,
    ManualCodeValidateResponse,
    OccupancyTypeUpdate,
    SoftDeleteRequest,
)
from modelcodes.services import code_usage as service
from modelcodes.services.code_usage import ManualCodeOutcome

router = APIRouter()

_METADATA_EXCLUDE = {"extension", "model_classification_id", "number_part",
                     "model_type", "classification_number", "actual_number"}


@router.get("/", response_model=CodeUsageListResponse)
def list_code_usage(
    model_classification_id: Optional[int] = Query(None),
    code_classification_id: Optional[int] = Query(None),
    is_allocated: Optional[bool] = Query(None, description="Filter by allocation state"),
    occupancy_type: Optional[OccupancyType] = Query(None),
    keyword: Optional[str] = Query(None, description="Match code, product name or description"),
    include_deleted: bool = Query(False),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of results"),
    offset: int = Query(0, ge=0, description="Number of results to skip"),
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """List code usage entries ordered by code."""
    total, items = service.list_entries(
        db,
        model_classification_id=model_classification_id,
        code_classification_id=code_classification_id,
        is_allocated=is_allocated,
        occupancy_type=occupancy_type.value if occupancy_type else None,
        keyword=keyword,
        include_deleted=include_deleted,
        limit=limit,
        offset=offset,
    )
    return CodeUsageListResponse(
        total=total, items=[CodeUsageResponse.model_validate(e) for e in items])


@router.post("/", response_model=CodeUsageResponse, status_code=status.HTTP_201_CREATED)
def create_code(
    data: CodeUsageCreate,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Create an allocated code from its components."""
    return unwrap(service.create_code(
        db,
        model_type=data.model_type,
        actual_number=data.actual_number,
        classification_number=data.classification_number,
        extension=data.extension,
        data=data.model_dump(exclude_unset=True, exclude=_METADATA_EXCLUDE),
        actor_id=current_actor.user_id,
    ))


@router.get("/availability", response_model=CodeAvailabilityResponse)
def check_code_availability(
    model_type: str = Query(...),
    actual_number: str = Query(...),
    classification_number: Optional[int] = Query(None, ge=0),
    extension: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    model = compose_model(model_type, classification_number, actual_number, extension)
    available = service.check_code_availability(
        db, model_type, classification_number, actual_number, extension)
    return CodeAvailabilityResponse(model=model, available=available)


@router.get("/stats", response_model=CodeStatsResponse)
def get_code_stats(
    model_classification_id: Optional[int] = Query(None),
    code_classification_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Total, allocated and available counts over live codes."""
    return service.get_available_code_stats(db, model_classification_id, code_classification_id)


@router.post("/manual", response_model=ManualCodeResponse, status_code=status.HTTP_201_CREATED)
def create_manual_code(
    data: ManualCodeCreate,
    response: Response,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """
    Create a code by hand.

    If the composed code already exists its metadata is updated instead and
    the response status is 200 rather than 201.
    """
    result = service.create_manual_code(
        db,
        model_classification_id=data.model_classification_id,
        number_part=data.number_part,
        extension=data.extension,
        data=data.model_dump(exclude_unset=True, exclude=_METADATA_EXCLUDE),
        actor_id=current_actor.user_id,
    )
    outcome = unwrap(result)
    if outcome.outcome == ManualCodeOutcome.UPDATED:
        response.status_code = status.HTTP_200_OK
    return ManualCodeResponse(
        outcome=outcome.outcome.value,
        message=result.message,
        entry=CodeUsageResponse.model_validate(outcome.entry),
    )


@router.post("/manual/validate", response_model=ManualCodeValidateResponse)
def validate_manual_code(
    data: ManualCodeValidateRequest,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Check a manual code's format and availability without creating it."""
    result = service.validate_manual_code(db, data.model_type, data.number_part, data.extension)
    model = unwrap(result)
    return ManualCodeValidateResponse(model=model, available=True, message=result.message)


@router.get("/by-model/{model_type}", response_model=List[CodeUsageResponse])
def list_by_model_type(
    model_type: str,
    include_deleted: bool = Query(False),
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    return service.list_by_model_type(db, model_type, include_deleted)


@router.get("/by-model/{model_type}/{classification_number}", response_model=List[CodeUsageResponse])
def list_by_model_type_and_number(
    model_type: str,
    classification_number: int,
    include_deleted: bool = Query(False),
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    return service.list_by_model_type_and_number(db, model_type, classification_number, include_deleted)


@router.get("/{entry_id}", response_model=CodeUsageResponse)
def get_code_usage(
    entry_id: int,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    return unwrap(service.get_entry(db, entry_id))


@router.post("/{entry_id}/allocate", response_model=CodeUsageResponse)
def allocate_code(
    entry_id: int,
    data: AllocateCodeRequest,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Allocate a pre-allocated code, optionally appending an extension."""
    return unwrap(service.allocate_code(
        db, entry_id, data.model_dump(exclude_unset=True), current_actor.user_id))


@router.patch("/{entry_id}", response_model=CodeUsageResponse)
def update_code_usage(
    entry_id: int,
    data: CodeUsageUpdate,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Edit an allocated code; changing the extension re-composes the code."""
    return unwrap(service.update_entry(
        db, entry_id, data.model_dump(exclude_unset=True), current_actor.user_id))


@router.patch("/{entry_id}/occupancy-type", response_model=CodeUsageResponse)
def update_occupancy_type(
    entry_id: int,
    data: OccupancyTypeUpdate,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    return unwrap(service.update_occupancy_type(
        db, entry_id, data.occupancy_type, current_actor.user_id))


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def soft_delete_code(
    entry_id: int,
    data: Optional[SoftDeleteRequest] = None,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Soft delete a code; the entry keeps its allocation flag."""
    reason = data.reason if data else None
    unwrap(service.soft_delete(db, entry_id, reason, current_actor.user_id))
    return None


@router.post("/{entry_id}/restore", status_code=status.HTTP_204_NO_CONTENT)
def restore_code(
    entry_id: int,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    unwrap(service.restore(db, entry_id, current_actor.user_id))
    return None
