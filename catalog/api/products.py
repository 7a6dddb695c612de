from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from catalog.config import settings
from catalog.crud import product_crud
from catalog.database import get_db
from catalog.exceptions import ProductNotFoundError, ProductValidationError
from catalog.schemas import (
    MessageResponse, ProductCategory, ProductCreate, ProductResponse, ProductUpdate
)
from catalog.security import get_current_user, require_json_content_type
from catalog.utils.product_query import ProductFilter, SortOption

router = APIRouter(
    prefix="/v1/product",
    tags=["product"],
    dependencies=[Depends(get_current_user)],
)


def parse_product_id(product_id: str) -> int:
    """Path dependency; resolved before the request body is validated."""
    if not product_id.strip():
        raise ProductValidationError("productId is required")
    try:
        return int(product_id)
    except ValueError:
        raise ProductNotFoundError("Failed to parse product id")


@router.post(
    "/",
    response_model=ProductResponse,
    status_code=201,
    dependencies=[Depends(require_json_content_type)],
)
async def create_product(product: ProductCreate, db: AsyncSession = Depends(get_db)):
    """Create a new product linked to an uploaded file."""
    return await product_crud.create_product(db, product)


@router.get("/", response_model=List[ProductResponse])
async def list_products(
    limit: int = Query(settings.default_page_limit, description="Maximum number of items; 0 or less means no limit"),
    offset: int = Query(0, description="Number of items to skip"),
    category: Optional[ProductCategory] = Query(None, description="Filter by category"),
    product_id: Optional[int] = Query(None, alias="productId", description="Filter by product ID"),
    sku: Optional[str] = Query(None, description="Filter by SKU (exact match)"),
    sort_by: Optional[str] = Query(None, alias="sortBy", description="newest, cheapest or sold-<seconds>"),
    db: AsyncSession = Depends(get_db),
):
    """List products with filtering, sorting and pagination."""
    if limit > settings.max_page_limit:
        limit = settings.max_page_limit

    filters = ProductFilter(
        product_id=product_id,
        category=category,
        sku=sku or None,
        sort=SortOption.parse(sort_by),
        limit=limit,
        offset=offset,
    )
    return await product_crud.list_products(db, filters)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int = Depends(parse_product_id), db: AsyncSession = Depends(get_db)):
    """Get a single product by ID."""
    return await product_crud.get_product(db, product_id)


@router.patch("/", include_in_schema=False)
@router.delete("/", include_in_schema=False)
async def missing_product_id():
    raise ProductValidationError("productId is required")


@router.patch(
    "/{product_id}",
    response_model=ProductResponse,
    dependencies=[Depends(require_json_content_type)],
)
async def update_product(
    product_update: ProductUpdate,
    product_id: int = Depends(parse_product_id),
    db: AsyncSession = Depends(get_db),
):
    """Update an existing product. Only the fields present in the body change."""
    return await product_crud.update_product(db, product_id, product_update)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(product_id: int = Depends(parse_product_id), db: AsyncSession = Depends(get_db)):
    """Delete a single product."""
    await product_crud.delete_product(db, product_id)
    return MessageResponse(message="Product deleted")
