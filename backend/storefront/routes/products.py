"""
Storefront Backend — Product Route Handlers
=============================================

What:  /products endpoints: CRUD, count, featured list, gallery upload.
How:   Reads form fields and uploaded files, delegates to ProductService,
       returns JSON. Errors are raised as StorefrontError subclasses and
       rendered by the global handlers in main.py.

Route Inventory (relative to settings.api_prefix):
    POST   /products                         admin   create (multipart, `image`)
    PUT    /products/{id}                    admin   update (multipart, optional `image`)
    GET    /products?categories=id1,id2      public  list (name/image/category)
    GET    /products/{id}                    public  detail
    DELETE /products/{id}                    admin   delete
    GET    /products/get/count               admin   textual count
    GET    /products/get/featured/{count}    public  featured list
    PUT    /products/gallery-image/{id}      admin   replace gallery (multipart, `images`)

Absolute image URLs are built from `request.base_url` (scheme + host of
the inbound request).
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Path, Query, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.database import get_db_session
from storefront.dependencies import get_product_service, require_admin
from storefront.schemas.common import ErrorResponse, MessageResponse
from storefront.schemas.product import (
    MAX_RATING,
    MAX_STOCK,
    ProductCreate,
    ProductResponse,
    ProductSummary,
    ProductUpdate,
)
from storefront.services.file_service import FileService, IncomingFile
from storefront.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])

ERROR_RESPONSES = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Admin role required", "model": ErrorResponse},
    404: {"description": "Product not found", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}


async def read_upload(
    file: Optional[UploadFile], file_service: FileService, field: str = "image"
) -> Optional[IncomingFile]:
    """
    Read a multipart file into memory and close it; None when absent.

    The declared part size is checked before reading, and never more than
    one byte past the limit is read when the size is unknown.
    """
    if file is None or not file.filename:
        return None
    try:
        file_service.check_max_size(file.size, field=field)
        content = await file.read(file_service.config.max_file_size + 1)
        file_service.check_max_size(len(content), field=field)
    finally:
        await file.close()
    return IncomingFile(filename=file.filename, content_type=file.content_type, content=content)


@router.post(
    "",
    status_code=201,
    response_model=ProductResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(require_admin)],
    summary="Create a product",
)
async def create_product(
    request: Request,
    name: str = Form(..., min_length=1, max_length=255),
    description: str = Form(""),
    rich_description: str = Form(""),
    brand: str = Form(""),
    price: float = Form(0.0, ge=0),
    category: Optional[str] = Form(None),
    count_in_stock: int = Form(..., ge=0, le=MAX_STOCK),
    rating: float = Form(0.0, ge=0, le=MAX_RATING),
    num_reviews: int = Form(0, ge=0),
    is_featured: bool = Form(False),
    image: Optional[UploadFile] = File(None, description="Primary image (PNG or JPEG)"),
    db: AsyncSession = Depends(get_db_session),
    service: ProductService = Depends(get_product_service),
) -> ProductResponse:
    """
    Create a product from multipart form data.

    The category must reference an existing category and an image must be
    attached; otherwise 400 and nothing is stored.
    """
    data = ProductCreate(
        name=name,
        description=description,
        rich_description=rich_description,
        brand=brand,
        price=price,
        category=category,
        count_in_stock=count_in_stock,
        rating=rating,
        num_reviews=num_reviews,
        is_featured=is_featured,
    )
    upload = await read_upload(image, service.file_service)
    return await service.create_product(db, data, upload, base_url=str(request.base_url))


@router.get(
    "/get/count",
    response_model=str,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(require_admin)],
    summary="Count products",
)
async def count_products(
    db: AsyncSession = Depends(get_db_session),
    service: ProductService = Depends(get_product_service),
) -> str:
    """Returns e.g. "Product count is : 12"."""
    return await service.count_products(db)


@router.get(
    "/get/featured",
    response_model=List[ProductResponse],
    summary="List featured products (default limit)",
)
async def list_featured_default(
    db: AsyncSession = Depends(get_db_session),
    service: ProductService = Depends(get_product_service),
) -> List[ProductResponse]:
    return await service.list_featured(db, 0)


@router.get(
    "/get/featured/{count}",
    response_model=List[ProductResponse],
    responses={422: {"description": "Negative or non-numeric count"}},
    summary="List up to `count` featured products",
)
async def list_featured(
    count: int = Path(..., ge=0, description="0 means the configured default limit"),
    db: AsyncSession = Depends(get_db_session),
    service: ProductService = Depends(get_product_service),
) -> List[ProductResponse]:
    return await service.list_featured(db, count)


@router.put(
    "/gallery-image/{product_id}",
    response_model=ProductResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(require_admin)],
    summary="Replace a product's gallery images",
)
async def update_gallery(
    request: Request,
    product_id: str,
    images: Optional[List[UploadFile]] = File(None, description="Gallery images (PNG or JPEG)"),
    db: AsyncSession = Depends(get_db_session),
    service: ProductService = Depends(get_product_service),
) -> ProductResponse:
    """
    Upload gallery images; the stored gallery is replaced by exactly
    these images, in upload order.
    """
    uploads = []
    for part in images or []:
        upload = await read_upload(part, service.file_service, field="images")
        if upload is not None:
            uploads.append(upload)
    return await service.update_gallery(db, product_id, uploads, base_url=str(request.base_url))


@router.get(
    "",
    response_model=List[ProductSummary],
    responses={400: {"description": "Malformed category id", "model": ErrorResponse}},
    summary="List products",
)
async def list_products(
    categories: Optional[str] = Query(
        default=None,
        description="Comma-separated category ids, e.g. ?categories=id1,id2",
    ),
    db: AsyncSession = Depends(get_db_session),
    service: ProductService = Depends(get_product_service),
) -> List[ProductSummary]:
    return await service.list_products(db, categories)


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    responses=ERROR_RESPONSES,
    summary="Get a product by id",
)
async def get_product(
    product_id: str,
    db: AsyncSession = Depends(get_db_session),
    service: ProductService = Depends(get_product_service),
) -> ProductResponse:
    return await service.get_product(db, product_id)


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(require_admin)],
    summary="Update a product",
)
async def update_product(
    request: Request,
    product_id: str,
    name: Optional[str] = Form(None, min_length=1, max_length=255),
    description: Optional[str] = Form(None),
    rich_description: Optional[str] = Form(None),
    brand: Optional[str] = Form(None),
    price: Optional[float] = Form(None, ge=0),
    category: Optional[str] = Form(None),
    count_in_stock: Optional[int] = Form(None, ge=0, le=MAX_STOCK),
    rating: Optional[float] = Form(None, ge=0, le=MAX_RATING),
    num_reviews: Optional[int] = Form(None, ge=0),
    is_featured: Optional[bool] = Form(None),
    image: Optional[UploadFile] = File(None, description="Replacement primary image"),
    db: AsyncSession = Depends(get_db_session),
    service: ProductService = Depends(get_product_service),
) -> ProductResponse:
    """
    Update a product. Fields left out keep their stored values; without
    a new `image` the stored image URL is kept.
    """
    provided = {
        "name": name,
        "description": description,
        "rich_description": rich_description,
        "brand": brand,
        "price": price,
        "category": category,
        "count_in_stock": count_in_stock,
        "rating": rating,
        "num_reviews": num_reviews,
        "is_featured": is_featured,
    }
    data = ProductUpdate(**{k: v for k, v in provided.items() if v is not None})
    upload = await read_upload(image, service.file_service)
    return await service.update_product(
        db, product_id, data, upload, base_url=str(request.base_url)
    )


@router.delete(
    "/{product_id}",
    response_model=MessageResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(require_admin)],
    summary="Delete a product",
)
async def delete_product(
    product_id: str,
    db: AsyncSession = Depends(get_db_session),
    service: ProductService = Depends(get_product_service),
) -> MessageResponse:
    await service.delete_product(db, product_id)
    return MessageResponse(success=True, message="Product successfully deleted")
