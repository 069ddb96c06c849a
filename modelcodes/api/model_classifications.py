"""Model classification routes."""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from modelcodes.api.responses import unwrap
from modelcodes.core.database import get_db
from modelcodes.core.deps import Actor, get_current_actor
from modelcodes.schemas.model_classification import (
    ModelClassificationCreate,
    ModelClassificationUpdate,
    ModelClassificationResponse,
)
from modelcodes.services import classification

router = APIRouter()


@router.get("/", response_model=List[ModelClassificationResponse])
def list_model_classifications(
    product_type_id: Optional[int] = Query(None, description="Filter by product type"),
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """List model classifications, optionally for one product type."""
    return classification.list_model_classifications(db, product_type_id)


@router.post("/", response_model=ModelClassificationResponse, status_code=status.HTTP_201_CREATED)
def create_model_classification(
    data: ModelClassificationCreate,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    return unwrap(classification.create_model_classification(
        db,
        product_type_id=data.product_type_id,
        model_type=data.type,
        description=data.description,
        has_code_classification=data.has_code_classification,
        actor_id=current_actor.user_id,
    ))


@router.get("/{model_classification_id}", response_model=ModelClassificationResponse)
def get_model_classification(
    model_classification_id: int,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    return unwrap(classification.get_model_classification(db, model_classification_id))


@router.patch("/{model_classification_id}", response_model=ModelClassificationResponse)
def update_model_classification(
    model_classification_id: int,
    data: ModelClassificationUpdate,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Update a model classification. Type and structure are frozen once codes exist."""
    return unwrap(classification.update_model_classification(
        db, model_classification_id, data.model_dump(exclude_unset=True), current_actor.user_id))


@router.delete("/{model_classification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_model_classification(
    model_classification_id: int,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    unwrap(classification.delete_model_classification(
        db, model_classification_id, current_actor.user_id))
    return None
