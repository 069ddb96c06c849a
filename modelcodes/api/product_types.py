"""Product type routes."""
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from modelcodes.api.responses import unwrap
from modelcodes.core.database import get_db
from modelcodes.core.deps import Actor, get_current_actor
from modelcodes.schemas.product_type import ProductTypeCreate, ProductTypeUpdate, ProductTypeResponse
from modelcodes.services import classification

router = APIRouter()


@router.get("/", response_model=List[ProductTypeResponse])
def list_product_types(
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """List all product types."""
    return classification.list_product_types(db)


@router.post("/", response_model=ProductTypeResponse, status_code=status.HTTP_201_CREATED)
def create_product_type(
    product_type_data: ProductTypeCreate,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Create a new product type."""
    return unwrap(classification.create_product_type(
        db, product_type_data.code, current_actor.user_id))


@router.get("/{product_type_id}", response_model=ProductTypeResponse)
def get_product_type(
    product_type_id: int,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    return unwrap(classification.get_product_type(db, product_type_id))


@router.patch("/{product_type_id}", response_model=ProductTypeResponse)
def update_product_type(
    product_type_id: int,
    product_type_data: ProductTypeUpdate,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    return unwrap(classification.update_product_type(
        db, product_type_id, product_type_data.code, current_actor.user_id))


@router.delete("/{product_type_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product_type(
    product_type_id: int,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Delete a product type that has no model classifications."""
    unwrap(classification.delete_product_type(db, product_type_id, current_actor.user_id))
    return None
