"""Code classification routes."""
from dataclasses import asdict
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from modelcodes.api.responses import unwrap
from modelcodes.core.database import get_db
from modelcodes.core.deps import Actor, get_current_actor
from modelcodes.schemas.code_classification import (
    CodeClassificationCreate,
    CodeClassificationUpdate,
    CodeClassificationResponse,
    CodeClassificationDeleteResponse,
    PreAllocationResponse,
)
from modelcodes.services import classification

router = APIRouter()


@router.get("/", response_model=List[CodeClassificationResponse])
def list_code_classifications(
    model_classification_id: Optional[int] = Query(None, description="Filter by model classification"),
    model_type: Optional[str] = Query(None, description="Filter by model type, e.g. SLU-"),
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    return classification.list_code_classifications(db, model_classification_id, model_type)


@router.post("/", response_model=CodeClassificationResponse, status_code=status.HTTP_201_CREATED)
def create_code_classification(
    data: CodeClassificationCreate,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """
    Create a code classification.

    Under a 3-tier model classification this also pre-allocates the full
    code range for the new classification number.
    """
    return unwrap(classification.create_code_classification(
        db, data.model_classification_id, data.code, data.name, current_actor.user_id))


@router.get("/{code_classification_id}", response_model=CodeClassificationResponse)
def get_code_classification(
    code_classification_id: int,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    return unwrap(classification.get_code_classification(db, code_classification_id))


@router.patch("/{code_classification_id}", response_model=CodeClassificationResponse)
def update_code_classification(
    code_classification_id: int,
    data: CodeClassificationUpdate,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    return unwrap(classification.update_code_classification(
        db, code_classification_id, code=data.code, name=data.name,
        actor_id=current_actor.user_id))


@router.delete("/{code_classification_id}", response_model=CodeClassificationDeleteResponse)
def delete_code_classification(
    code_classification_id: int,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Delete a code classification and its unallocated codes."""
    result = classification.delete_code_classification(
        db, code_classification_id, current_actor.user_id)
    removed = unwrap(result)
    return CodeClassificationDeleteResponse(message=result.message, removed_entries=removed)


@router.post("/{code_classification_id}/pre-allocate", response_model=PreAllocationResponse)
def pre_allocate_codes(
    code_classification_id: int,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Generate any missing codes in the classification's range."""
    generated = unwrap(classification.pre_allocate_codes(
        db, code_classification_id, current_actor.user_id))
    return PreAllocationResponse(**asdict(generated))
