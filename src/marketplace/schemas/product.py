from typing import List, Optional
from decimal import Decimal

from pydantic import Field

from .base import BaseSchema, BaseResponseSchema


class ProductCreate(BaseSchema):
    """Schema for creating a product."""
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    stock: int = Field(default=0, ge=0)


class ProductResponse(BaseResponseSchema):
    """Schema for product response."""
    owner_id: int
    name: str
    description: Optional[str] = None
    price: float
    stock: int


class ProductListResponse(BaseSchema):
    """The caller's products together with their current premium access."""
    products: List[ProductResponse]
    has_premium_access: bool
