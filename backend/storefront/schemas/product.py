"""
Storefront Backend — Product Schemas
======================================

What:  Validated product fields (built from multipart form data by the
       routes) and the response models for /products.
How:   The routes declare the same bounds on their Form() parameters, so
       request-level problems surface as FastAPI 422s before these models
       are constructed.

Field bounds:
    price >= 0, 0 <= count_in_stock <= 255, 0 <= rating <= 5, num_reviews >= 0
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from storefront.schemas.category import CategoryResponse

MAX_STOCK = 255
MAX_RATING = 5.0


class ProductCreate(BaseModel):
    """
    Fields accepted by POST /products.

    `category` is the raw id string as sent by the client; CategoryService
    parses it and checks the row exists.
    """
    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    rich_description: str = ""
    brand: str = ""
    price: float = Field(default=0.0, ge=0)
    category: Optional[str] = None
    count_in_stock: int = Field(ge=0, le=MAX_STOCK)
    rating: float = Field(default=0.0, ge=0, le=MAX_RATING)
    num_reviews: int = Field(default=0, ge=0)
    is_featured: bool = False


class ProductUpdate(BaseModel):
    """
    Fields accepted by PUT /products/{id}.

    Only fields explicitly provided are merged into the stored product;
    `image`, `images`, `id` and the timestamps are not part of this model.
    """
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    rich_description: Optional[str] = None
    brand: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = None
    count_in_stock: Optional[int] = Field(default=None, ge=0, le=MAX_STOCK)
    rating: Optional[float] = Field(default=None, ge=0, le=MAX_RATING)
    num_reviews: Optional[int] = Field(default=None, ge=0)
    is_featured: Optional[bool] = None


class ProductResponse(BaseModel):
    """Full product with its category populated."""
    id: uuid.UUID
    name: str
    description: str
    rich_description: str
    image: str
    images: List[str] = Field(default_factory=list)
    brand: str
    price: float
    category: Optional[CategoryResponse] = None
    count_in_stock: int
    rating: float
    num_reviews: int
    is_featured: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProductSummary(BaseModel):
    """List projection returned by GET /products: name, image, category."""
    name: str
    image: str
    category: Optional[CategoryResponse] = None

    model_config = {"from_attributes": True}
