from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.dialects import postgresql

from catalog.exceptions import ProductValidationError
from catalog.models.product import Product
from catalog.schemas import ProductCategory
from catalog.utils.product_query import (
    EARLIEST_SALE,
    ProductFilter,
    SortKind,
    SortOption,
    apply_pagination,
    build_list_query,
    build_predicates,
    order_by_clause,
    sales_window_start,
)


def compile_pg(query):
    return query.compile(dialect=postgresql.dialect())


@pytest.mark.parametrize(
    "token, expected",
    [
        ("newest", SortOption(SortKind.NEWEST)),
        ("cheapest", SortOption(SortKind.CHEAPEST)),
        ("sold-60", SortOption(SortKind.SOLD, 60)),
        ("sold-0", SortOption(SortKind.SOLD, 0)),
    ],
)
def test_parse_recognized_sort_tokens(token, expected):
    assert SortOption.parse(token) == expected


@pytest.mark.parametrize(
    "token",
    [None, "", "bogus", "sold-", "sold--5", "sold-abc", "sold-+5", "sold-5s", "Newest", "createdAt"],
)
def test_parse_unrecognized_sort_tokens_disable_sorting(token):
    assert SortOption.parse(token) is None


def test_from_mapping_drops_unknown_keys():
    filters = ProductFilter.from_mapping({
        "category": "Tools",
        "sku": "SKU-1",
        "name": "Hammer",
        "price": "100",
        "drop table": "products",
    })

    assert filters == ProductFilter(category=ProductCategory.TOOLS, sku="SKU-1")


def test_from_mapping_parses_sort_and_pagination():
    filters = ProductFilter.from_mapping({
        "product_id": "7",
        "sort_by": "sold-30",
        "limit": "10",
        "offset": "nope",
    })

    assert filters.product_id == 7
    assert filters.sort == SortOption(SortKind.SOLD, 30)
    assert filters.limit == 10
    assert filters.offset == 0


@pytest.mark.parametrize("mapping", [{"product_id": "abc"}, {"category": "Weapons"}])
def test_from_mapping_rejects_bad_values(mapping):
    with pytest.raises(ProductValidationError):
        ProductFilter.from_mapping(mapping)


def test_build_predicates_order_and_values():
    filters = ProductFilter(product_id=3, category=ProductCategory.FOOD, sku="SKU-9")

    predicates = build_predicates(filters)

    assert [column.key for column, _ in predicates] == ["id", "category", "sku"]
    assert [value for _, value in predicates] == [3, "Food", "SKU-9"]


def test_build_predicates_empty_sku_is_ignored():
    assert build_predicates(ProductFilter(sku="")) == []


def test_unknown_keys_never_reach_the_query():
    filters = ProductFilter.from_mapping({"sku": "SKU-1", "name": "Hammer", "qty": "3"})

    compiled = compile_pg(build_list_query(filters))
    sql = str(compiled)

    assert "products.sku = %(" in sql
    assert "SKU-1" in compiled.params.values()
    assert "products.name =" not in sql
    assert "products.qty =" not in sql
    assert "Hammer" not in compiled.params.values()


def test_query_without_filters_is_well_formed():
    sql = str(compile_pg(build_list_query(ProductFilter())))

    assert "JOIN files ON files.id = products.file_id" in sql
    assert "WHERE true" in sql
    assert "ORDER BY" not in sql
    assert "LIMIT" not in sql
    assert "OFFSET" not in sql


def test_filter_values_are_bound_parameters():
    filters = ProductFilter(product_id=5, category=ProductCategory.CLOTHES)

    compiled = compile_pg(build_list_query(filters))

    params = list(compiled.params.values())
    assert 5 in params
    assert "Clothes" in params
    assert "%(" in str(compiled).split("WHERE", 1)[1]


def test_newest_orders_by_latest_timestamp_descending():
    sql = str(compile_pg(build_list_query(ProductFilter(sort=SortOption(SortKind.NEWEST)))))

    order_by = sql.split("ORDER BY", 1)[1]
    assert order_by.lstrip().startswith("CASE WHEN")
    assert "products.updated_at > products.created_at" in order_by
    assert "ELSE products.created_at END DESC" in order_by


def test_cheapest_orders_by_price_ascending():
    sql = str(compile_pg(build_list_query(ProductFilter(sort=SortOption(SortKind.CHEAPEST)))))

    assert "ORDER BY products.price ASC" in sql


def test_sold_window_uses_correlated_subquery_with_bound_cutoff():
    now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    compiled = compile_pg(
        build_list_query(ProductFilter(sort=SortOption(SortKind.SOLD, 60)), now=now)
    )
    sql = str(compiled)

    assert "ORDER BY (SELECT count(sales.id)" in sql
    assert "sales.product_id = products.id" in sql
    assert "sales.sold_at >= %(" in sql
    assert sql.rstrip().endswith("DESC")
    assert now - timedelta(seconds=60) in compiled.params.values()


def test_no_sort_means_no_order_by():
    assert order_by_clause(None) is None


@pytest.mark.parametrize(
    "limit, offset, has_limit, has_offset",
    [
        (0, 0, False, False),
        (-1, -3, False, False),
        (2, 0, True, False),
        (0, 4, False, True),
        (2, 1, True, True),
    ],
)
def test_apply_pagination_only_for_positive_values(limit, offset, has_limit, has_offset):
    query = apply_pagination(select(Product), limit, offset)

    assert (query._limit_clause is not None) == has_limit
    assert (query._offset_clause is not None) == has_offset


def test_pagination_values_are_bound():
    compiled = compile_pg(build_list_query(ProductFilter(limit=7, offset=3)))
    sql = str(compiled)

    assert "LIMIT" in sql and "OFFSET" in sql
    assert 7 in compiled.params.values()
    assert 3 in compiled.params.values()


@pytest.mark.parametrize("token", ["sold-100000000000", "sold-" + "9" * 40])
def test_oversized_sales_window_starts_at_earliest_instant(token):
    now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    compiled = compile_pg(build_list_query(ProductFilter(sort=SortOption.parse(token)), now=now))

    assert "ORDER BY (SELECT count(sales.id)" in str(compiled)
    assert EARLIEST_SALE in compiled.params.values()


def test_sales_window_start():
    now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    assert sales_window_start(now, 0) == now
    assert sales_window_start(now, 90) == now - timedelta(seconds=90)
    assert sales_window_start(now, 100000000000) == EARLIEST_SALE
