"""
Listing query construction for products.

A listing is built in three steps: equality predicates from the filter
fields, an optional ORDER BY chosen from the sort token, and LIMIT/OFFSET.
All values reach the database as bound parameters.
"""
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple

from sqlalchemy import Select, and_, case, func, select, true
from sqlalchemy.sql.elements import ColumnElement

from catalog.exceptions import ProductValidationError
from catalog.models.file import File
from catalog.models.product import Product
from catalog.models.sale import Sale
from catalog.schemas import ProductCategory

SOLD_WINDOW_PATTERN = re.compile(r"sold-(\d+)", re.ASCII)
EARLIEST_SALE = datetime.min.replace(tzinfo=timezone.utc)


class SortKind(str, Enum):
    NEWEST = "newest"
    CHEAPEST = "cheapest"
    SOLD = "sold"


@dataclass(frozen=True)
class SortOption:
    kind: SortKind
    window_seconds: Optional[int] = None

    @classmethod
    def parse(cls, token: Optional[str]) -> Optional["SortOption"]:
        """
        Parse a sortBy token.

        Recognizes "newest", "cheapest" and "sold-<N>" with N a non-negative
        integer number of seconds. Anything else, including "sold--5",
        returns None, meaning the listing stays in store-default order.
        """
        if not token:
            return None
        if token == SortKind.NEWEST.value:
            return cls(SortKind.NEWEST)
        if token == SortKind.CHEAPEST.value:
            return cls(SortKind.CHEAPEST)
        match = SOLD_WINDOW_PATTERN.fullmatch(token)
        if match:
            return cls(SortKind.SOLD, int(match.group(1)))
        return None


@dataclass(frozen=True)
class ProductFilter:
    """Options accepted by the product listing."""
    product_id: Optional[int] = None
    category: Optional[ProductCategory] = None
    sku: Optional[str] = None
    sort: Optional[SortOption] = None
    limit: int = 0
    offset: int = 0

    @classmethod
    def from_mapping(cls, filters: Mapping[str, str]) -> "ProductFilter":
        """
        Build a filter from loose string key/value pairs, for callers that
        hold query-string style mappings instead of typed values.

        Recognized keys are product_id, category, sku, sort_by, limit and
        offset; every other key is dropped. Unparsable limit/offset count
        as 0 (unbounded).
        """
        product_id = filters.get("product_id") or None
        if product_id is not None:
            try:
                product_id = int(product_id)
            except ValueError:
                raise ProductValidationError(f"Invalid product_id: {product_id!r}")

        category = filters.get("category") or None
        if category is not None:
            try:
                category = ProductCategory(category)
            except ValueError:
                raise ProductValidationError(f"Invalid category: {category!r}")

        return cls(
            product_id=product_id,
            category=category,
            sku=filters.get("sku") or None,
            sort=SortOption.parse(filters.get("sort_by")),
            limit=_to_int(filters.get("limit")),
            offset=_to_int(filters.get("offset")),
        )


def _to_int(value: Optional[str]) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def build_predicates(filters: ProductFilter) -> List[Tuple[Any, Any]]:
    """Return the (column, value) equality constraints for the set filter fields, in a fixed order."""
    predicates = []
    if filters.product_id is not None:
        predicates.append((Product.id, filters.product_id))
    if filters.category is not None:
        predicates.append((Product.category, ProductCategory(filters.category).value))
    if filters.sku:
        predicates.append((Product.sku, filters.sku))
    return predicates


def where_clause(predicates: List[Tuple[Any, Any]]) -> ColumnElement:
    # true() keeps the clause valid when there are no predicates
    return and_(true(), *(column == value for column, value in predicates))


def sales_window_start(now: datetime, window_seconds: int) -> datetime:
    """Start of the trailing sales window; windows reaching past datetime.min start there."""
    try:
        return now - timedelta(seconds=window_seconds)
    except OverflowError:
        return EARLIEST_SALE


def order_by_clause(sort: Optional[SortOption], now: Optional[datetime] = None) -> Optional[ColumnElement]:
    if sort is None:
        return None

    if sort.kind is SortKind.NEWEST:
        last_touched = case(
            (Product.updated_at > Product.created_at, Product.updated_at),
            else_=Product.created_at,
        )
        return last_touched.desc()

    if sort.kind is SortKind.CHEAPEST:
        return Product.price.asc()

    cutoff = sales_window_start(now or datetime.now(timezone.utc), sort.window_seconds)
    sales_in_window = (
        select(func.count(Sale.id))
        .where(Sale.product_id == Product.id, Sale.sold_at >= cutoff)
        .correlate(Product)
        .scalar_subquery()
    )
    return sales_in_window.desc()


def apply_pagination(query: Select, limit: int, offset: int) -> Select:
    """Add LIMIT/OFFSET only for positive values; zero or negative leaves that side unbounded."""
    if limit > 0:
        query = query.limit(limit)
    if offset > 0:
        query = query.offset(offset)
    return query


def build_list_query(filters: ProductFilter, now: Optional[datetime] = None) -> Select:
    """Select (Product, File) rows matching the filter, sorted and paginated."""
    query = (
        select(Product, File)
        .join(File, File.id == Product.file_id)
        .where(where_clause(build_predicates(filters)))
    )

    order = order_by_clause(filters.sort, now)
    if order is not None:
        query = query.order_by(order)

    return apply_pagination(query, filters.limit, filters.offset)
