from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy import select, insert, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.exceptions import DatabaseError, ProductNotFoundError, ProductValidationError
from catalog.logging_config import get_child_logger
from catalog.models.file import File
from catalog.models.product import Product
from catalog.schemas import ProductCreate, ProductUpdate, ProductResponse
from catalog.utils.product_query import ProductFilter, build_list_query

logger = get_child_logger("crud.product")


def to_product_response(product: Product, file: File) -> ProductResponse:
    """Combine a product row with its file row into the response shape."""
    return ProductResponse(
        product_id=str(product.id),
        name=product.name,
        category=product.category,
        qty=product.qty,
        price=product.price,
        sku=product.sku,
        file_id=file.id,
        file_uri=file.uri,
        file_thumbnail_uri=file.thumbnail_uri,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def _select_with_file():
    return select(Product, File).join(File, File.id == Product.file_id)


async def get_file(db: AsyncSession, file_id: str) -> File:
    """Load a file record, raising ProductValidationError when it does not exist."""
    try:
        file = await db.scalar(select(File).where(File.id == file_id))
    except SQLAlchemyError as e:
        logger.error("Failed to validate fileId", extra={"file_id": file_id}, exc_info=e)
        raise DatabaseError("Failed to validate fileId", original_exception=e)

    if file is None:
        raise ProductValidationError(f"fileId '{file_id}' does not exist")
    return file


async def create_product(db: AsyncSession, product: ProductCreate) -> ProductResponse:
    """
    Insert a product after checking that its file exists.

    The insert returns the stored row (id and timestamps included), which is
    combined with the file loaded by the existence check, so no read-back
    query is needed.
    """
    file = await get_file(db, product.file_id)

    try:
        db_product = await db.scalar(
            insert(Product).values(**product.model_dump()).returning(Product)
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to create product", extra={"sku": product.sku}, exc_info=e)
        raise DatabaseError("Failed to create product", original_exception=e)

    logger.info("Created product", extra={"product_id": db_product.id, "sku": db_product.sku})
    return to_product_response(db_product, file)


async def list_products(
    db: AsyncSession,
    filters: ProductFilter,
    now: Optional[datetime] = None,
) -> List[ProductResponse]:
    logger.info(
        "Listing products",
        extra={
            "product_id": filters.product_id,
            "category": filters.category,
            "sku": filters.sku,
            "sort": filters.sort,
            "limit": filters.limit,
            "offset": filters.offset,
        },
    )

    try:
        result = await db.execute(build_list_query(filters, now))
        rows = result.all()
    except SQLAlchemyError as e:
        logger.error("Failed to list products", exc_info=e)
        raise DatabaseError("Failed to list products", original_exception=e)

    # All rows are decoded before anything is returned
    try:
        return [to_product_response(product, file) for product, file in rows]
    except ValidationError as e:
        logger.error("Failed to decode product row", exc_info=e)
        raise DatabaseError("Failed to decode product row", original_exception=e)


async def get_product(db: AsyncSession, product_id: int) -> ProductResponse:
    try:
        result = await db.execute(_select_with_file().where(Product.id == product_id))
        row = result.one_or_none()
    except SQLAlchemyError as e:
        logger.error("Failed to fetch product", extra={"product_id": product_id}, exc_info=e)
        raise DatabaseError("Failed to fetch product", original_exception=e)

    if row is None:
        raise ProductNotFoundError(f"Product with id {product_id} not found")

    return to_product_response(*row)


async def update_product(db: AsyncSession, product_id: int, product_update: ProductUpdate) -> ProductResponse:
    """Apply the fields set in product_update to an existing product."""
    changes = product_update.model_dump(exclude_unset=True, exclude_none=True)

    try:
        result = await db.execute(_select_with_file().where(Product.id == product_id))
        row = result.one_or_none()
    except SQLAlchemyError as e:
        logger.error("Failed to fetch product for update", extra={"product_id": product_id}, exc_info=e)
        raise DatabaseError("Failed to update product", original_exception=e)

    if row is None:
        raise ProductNotFoundError(f"Product with id {product_id} not found")

    db_product, file = row
    if "file_id" in changes and changes["file_id"] != db_product.file_id:
        file = await get_file(db, changes["file_id"])

    if not changes:
        return to_product_response(db_product, file)

    for field, value in changes.items():
        setattr(db_product, field, value)

    try:
        await db.commit()
        # updated_at is set by the database
        await db.refresh(db_product)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to update product", extra={"product_id": product_id}, exc_info=e)
        raise DatabaseError("Failed to update product", original_exception=e)

    logger.info("Updated product", extra={"product_id": product_id, "fields": sorted(changes)})
    return to_product_response(db_product, file)


async def delete_product(db: AsyncSession, product_id: int) -> None:
    try:
        result = await db.execute(
            delete(Product)
            .where(Product.id == product_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ProductNotFoundError(f"Product with id {product_id} not found")
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to delete product", extra={"product_id": product_id}, exc_info=e)
        raise DatabaseError("Failed to delete product", original_exception=e)

    logger.info("Deleted product", extra={"product_id": product_id})
