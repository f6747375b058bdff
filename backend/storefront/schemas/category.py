"""
Storefront Backend — Category Schemas
=======================================

What:  Request bodies and response model for /categories.

CategoryUpdate is partial: only the fields present in the request body are
applied (`model_dump(exclude_unset=True)`), and only these four fields exist,
so ids and timestamps can never be overwritten through the API.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

# "#fff", "#ff8800" or "#ff8800cc"
COLOR_PATTERN = r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$"


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    icon: Optional[str] = Field(default=None, max_length=255)
    color: Optional[str] = Field(default=None, pattern=COLOR_PATTERN)
    image: Optional[str] = Field(default=None, max_length=1024)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    icon: Optional[str] = Field(default=None, max_length=255)
    color: Optional[str] = Field(default=None, pattern=COLOR_PATTERN)
    image: Optional[str] = Field(default=None, max_length=1024)


class CategoryResponse(BaseModel):
    """Full category record; also embedded in product responses."""
    id: uuid.UUID
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None
    image: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
