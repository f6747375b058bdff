"""
Storefront Backend — Category Route Handlers
==============================================

What:  /categories CRUD. Reads are public, writes require an admin token.

Deletion policy:
    DELETE answers 409 while any product references the category.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.database import get_db_session
from storefront.dependencies import get_category_service, require_admin
from storefront.schemas.category import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
)
from storefront.schemas.common import ErrorResponse, MessageResponse
from storefront.services.category_service import CategoryService

router = APIRouter(prefix="/categories", tags=["Categories"])

ERROR_RESPONSES = {
    400: {"description": "Malformed id", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Admin role required", "model": ErrorResponse},
    404: {"description": "Category not found", "model": ErrorResponse},
}


@router.get("", response_model=List[CategoryResponse], summary="List categories")
async def list_categories(
    db: AsyncSession = Depends(get_db_session),
    service: CategoryService = Depends(get_category_service),
) -> List[CategoryResponse]:
    return await service.list_categories(db)


@router.get(
    "/{category_id}",
    response_model=CategoryResponse,
    responses=ERROR_RESPONSES,
    summary="Get a category by id",
)
async def get_category(
    category_id: str,
    db: AsyncSession = Depends(get_db_session),
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    return await service.get_category(db, category_id)


@router.post(
    "",
    status_code=201,
    response_model=CategoryResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(require_admin)],
    summary="Create a category",
)
async def create_category(
    payload: CategoryCreate,
    db: AsyncSession = Depends(get_db_session),
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    return await service.create_category(db, payload)


@router.put(
    "/{category_id}",
    response_model=CategoryResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(require_admin)],
    summary="Update a category",
)
async def update_category(
    category_id: str,
    payload: CategoryUpdate,
    db: AsyncSession = Depends(get_db_session),
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    """Partial update: only fields present in the body are changed."""
    return await service.update_category(db, category_id, payload)


@router.delete(
    "/{category_id}",
    response_model=MessageResponse,
    responses={
        **ERROR_RESPONSES,
        409: {"description": "Category still referenced by products", "model": ErrorResponse},
    },
    dependencies=[Depends(require_admin)],
    summary="Delete a category",
)
async def delete_category(
    category_id: str,
    db: AsyncSession = Depends(get_db_session),
    service: CategoryService = Depends(get_category_service),
) -> MessageResponse:
    await service.delete_category(db, category_id)
    return MessageResponse(success=True, message="Category successfully deleted")
