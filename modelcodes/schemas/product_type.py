"""Product type schemas."""
from pydantic import BaseModel, Field
from datetime import datetime


class ProductTypeBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)


class ProductTypeCreate(ProductTypeBase):
    pass


class ProductTypeUpdate(ProductTypeBase):
    pass


class ProductTypeResponse(ProductTypeBase):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True
