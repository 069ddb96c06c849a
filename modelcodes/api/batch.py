"""Batch operation routes."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from modelcodes.core.database import get_db
from modelcodes.core.deps import Actor, get_current_actor
from modelcodes.schemas.batch import (
    BatchIdsRequest,
    BatchOccupancyTypeRequest,
    BatchOperationResponse,
    BatchProductTypeRequest,
    BatchSoftDeleteRequest,
)
from modelcodes.services import batch_operations

router = APIRouter()


@router.post("/code-usage/soft-delete", response_model=BatchOperationResponse)
def batch_soft_delete(
    data: BatchSoftDeleteRequest,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Soft delete several codes; failures are reported per id."""
    return batch_operations.batch_soft_delete(db, data.ids, data.reason, current_actor.user_id)


@router.post("/code-usage/restore", response_model=BatchOperationResponse)
def batch_restore(
    data: BatchIdsRequest,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    return batch_operations.batch_restore(db, data.ids, current_actor.user_id)


@router.post("/code-usage/occupancy-types", response_model=BatchOperationResponse)
def batch_update_occupancy_types(
    data: BatchOccupancyTypeRequest,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    return batch_operations.batch_update_occupancy_types(
        db, [item.model_dump() for item in data.items], current_actor.user_id)


@router.post("/product-types", response_model=BatchOperationResponse)
def batch_create_product_types(
    data: BatchProductTypeRequest,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    return batch_operations.batch_create_product_types(db, data.codes, current_actor.user_id)
