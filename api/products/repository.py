"""
Catalog persistence (raw SQL).

Every function takes the executor to run on: the pool for one-off queries, or
a connection when the caller holds a transaction. Values are always bound
parameters; numeric columns come back as `Decimal` and are coerced by the
service layer.
"""

from __future__ import annotations

from typing import Any

from core import db
from core.db import Executor

SEARCH_RESULT_LIMIT = 8

_PRODUCT_COLUMNS = """
    p.id,
    p.name,
    p.price,
    p.discount,
    p.imageurl,
    p.subcategoryid,
    p.description
"""


def escape_like(term: str) -> str:
    """
    Escape LIKE metacharacters so `term` matches literally (used with ESCAPE '\\').
    """
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def list_products(executor: Executor) -> list[dict[str, Any]]:
    return await db.fetch_all(
        executor,
        f"""
        SELECT {_PRODUCT_COLUMNS},
               s.name AS subcategoryname
        FROM products p
        LEFT JOIN subcategories s ON s.id = p.subcategoryid
        ORDER BY p.id
        """,
    )


async def get_product(executor: Executor, product_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        executor,
        f"""
        SELECT {_PRODUCT_COLUMNS}
        FROM products p
        WHERE p.id = $1
        """,
        product_id,
    )


async def product_exists(executor: Executor, product_id: int) -> bool:
    row = await db.fetch_one(
        executor,
        """
        SELECT 1 AS ok
        FROM products
        WHERE id = $1
        LIMIT 1
        """,
        product_id,
    )
    return row is not None


async def get_products_by_ids(executor: Executor, product_ids: list[int]) -> list[dict[str, Any]]:
    return await db.fetch_all(
        executor,
        f"""
        SELECT {_PRODUCT_COLUMNS}
        FROM products p
        WHERE p.id = ANY($1::bigint[])
        """,
        product_ids,
    )


async def get_products_by_subcategory(executor: Executor, subcategory_id: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        executor,
        f"""
        SELECT {_PRODUCT_COLUMNS}
        FROM products p
        WHERE p.subcategoryid = $1
        ORDER BY p.id
        """,
        subcategory_id,
    )


async def get_subcategory(executor: Executor, subcategory_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        executor,
        """
        SELECT id, name, imageurl, categoryid
        FROM subcategories
        WHERE id = $1
        """,
        subcategory_id,
    )


async def get_category(executor: Executor, category_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        executor,
        """
        SELECT id, name
        FROM categories
        WHERE id = $1
        """,
        category_id,
    )


async def search_products_by_name(
    executor: Executor,
    term: str,
    *,
    limit: int = SEARCH_RESULT_LIMIT,
) -> list[dict[str, Any]]:
    """
    Case-insensitive substring match on product name.
    """
    return await db.fetch_all(
        executor,
        f"""
        SELECT {_PRODUCT_COLUMNS}
        FROM products p
        WHERE p.name ILIKE ('%' || $1 || '%') ESCAPE '\\'
        ORDER BY p.name, p.id
        LIMIT $2
        """,
        escape_like(term),
        limit,
    )


async def insert_product(
    executor: Executor,
    *,
    subcategory_id: int,
    name: str,
    price: float,
    discount: float,
    image_url: str,
    description: str | None,
) -> dict[str, Any] | None:
    return await db.fetch_one(
        executor,
        """
        INSERT INTO products (name, price, discount, imageurl, subcategoryid, description)
        VALUES ($1, $2, $3, $4, $5, $6)
        RETURNING id
        """,
        name,
        price,
        discount,
        image_url,
        subcategory_id,
        description,
    )


async def update_product_with_image(
    executor: Executor,
    product_id: int,
    *,
    name: str,
    price: float,
    discount: float,
    image_url: str,
    description: str | None,
) -> dict[str, Any] | None:
    """
    Returns the updated row id, or None when no product has `product_id`.
    """
    return await db.fetch_one(
        executor,
        """
        UPDATE products
        SET name = $1,
            price = $2,
            discount = $3,
            imageurl = $4,
            description = $5
        WHERE id = $6
        RETURNING id
        """,
        name,
        price,
        discount,
        image_url,
        description,
        product_id,
    )


async def update_product_fields(
    executor: Executor,
    product_id: int,
    *,
    name: str,
    price: float,
    discount: float,
) -> dict[str, Any] | None:
    """
    Update name/price/discount only; imageurl and description are left as is.
    """
    return await db.fetch_one(
        executor,
        """
        UPDATE products
        SET name = $1,
            price = $2,
            discount = $3
        WHERE id = $4
        RETURNING id
        """,
        name,
        price,
        discount,
        product_id,
    )


async def delete_product(executor: Executor, product_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        executor,
        """
        DELETE FROM products
        WHERE id = $1
        RETURNING id
        """,
        product_id,
    )
