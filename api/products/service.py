"""
Product catalog "service layer".

`ProductCatalog` is the only place that combines the database and the blob
store. It is independent of FastAPI's routing layer:
- validate ids, id lists, search terms and image uploads
- run the SQL in `repository.py`, inside one snapshot when a read needs
  several dependent statements
- upload images before writing the rows that reference them
- coerce NUMERIC columns to plain ints
- raise typed `CatalogError`s; the router maps them to status codes
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from pathlib import PurePosixPath, PureWindowsPath
from typing import Any, Protocol

import asyncpg

from core.blob import BlobStoreError

from . import repository, schemas
from .errors import NotFoundError, StoreError, UploadError, ValidationError

logger = logging.getLogger(__name__)

MAX_SEARCH_CHARS = 200

# id columns are bigint
MIN_ID = -(2**63)
MAX_ID = 2**63 - 1


class BlobStore(Protocol):
    container: str

    async def upload(self, object_name: str, data: bytes, *, content_type: str | None = None) -> None: ...

    def public_url(self, object_name: str) -> str: ...

    def container_path(self, object_name: str) -> str: ...


@dataclass(frozen=True)
class ImageFile:
    """Raw image bytes plus the filename the client uploaded them as."""

    data: bytes
    filename: str
    content_type: str | None = None


# -- coercion / validation ---------------------------------------------------


def _to_int(value: Any) -> int:
    """
    NUMERIC -> int, rounding half away from zero like Postgres' ::integer.
    """
    if isinstance(value, int):
        return value
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _to_optional_int(value: Any) -> int | None:
    return None if value is None else _to_int(value)


def _product(row: dict[str, Any]) -> schemas.Product:
    return schemas.Product(
        id=_to_int(row["id"]),
        name=str(row["name"]),
        price=_to_int(row["price"]),
        discount=_to_int(row["discount"]),
        image_url=row.get("imageurl"),
        subcategory_id=_to_int(row["subcategoryid"]),
        description=row.get("description"),
    )


def _product_list_item(row: dict[str, Any]) -> schemas.ProductListItem:
    return schemas.ProductListItem(
        **_product(row).model_dump(),
        subcategory_name=row.get("subcategoryname"),
    )


def _subcategory(row: dict[str, Any]) -> schemas.Subcategory:
    return schemas.Subcategory(
        id=_to_int(row["id"]),
        name=str(row["name"]),
        image_url=row.get("imageurl"),
        category_id=_to_int(row["categoryid"]),
    )


def _category(row: dict[str, Any]) -> schemas.Category:
    return schemas.Category(id=_to_int(row["id"]), name=str(row["name"]))


def require_id(value: int, *, what: str = "id") -> int:
    if not MIN_ID <= value <= MAX_ID:
        raise ValidationError(f"{what} {value} is out of range.")
    return value


def parse_id_list(raw: Any) -> list[int]:
    """
    Accept a list of ints, or a JSON-encoded list string, and return the
    distinct ids in first-seen order.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValidationError("ids must be a JSON list of integers.") from e

    if not isinstance(raw, list):
        raise ValidationError("ids must be a list of integers.")

    ids: list[int] = []
    seen: set[int] = set()
    for item in raw:
        if isinstance(item, bool) or not isinstance(item, (int, float)):
            raise ValidationError("ids must be a list of integers.")
        if isinstance(item, float) and not item.is_integer():
            raise ValidationError("ids must be a list of integers.")
        value = require_id(int(item))
        if value not in seen:
            seen.add(value)
            ids.append(value)
    return ids


def normalize_search_term(raw: Any) -> str:
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raise ValidationError("searchString must be a string.")
    term = raw.strip()
    if len(term) > MAX_SEARCH_CHARS:
        raise ValidationError(f"searchString is too long. Max is {MAX_SEARCH_CHARS} characters.")
    return term


def _require_name(name: Any) -> str:
    name = (name or "").strip() if isinstance(name, str) else ""
    if not name:
        raise ValidationError("Product name is required.")
    return name


def _require_amount(value: Any, *, what: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{what} must be a number.")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"{what} must be a number.") from e
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"{what} must be a non-negative number.")
    return amount


def object_name_for(filename: str) -> str:
    """
    Blob object name for an uploaded file: its basename, with any client-side
    directory (POSIX or Windows style) stripped.
    """
    name = PureWindowsPath(PurePosixPath(filename or "").name).name.strip()
    if not name or name in {".", ".."}:
        raise ValidationError("Image filename is required.")
    return name


def _require_image(image: ImageFile) -> str:
    if not image.data:
        raise ValidationError("Image file is empty.")
    return object_name_for(image.filename)


# -- catalog -----------------------------------------------------------------


class ProductCatalog:
    """
    Product operations over an asyncpg pool and a blob store.

    Both collaborators are created once at startup and injected here.
    """

    def __init__(self, pool: asyncpg.Pool, blob_store: BlobStore):
        self._pool = pool
        self._blobs = blob_store

    @asynccontextmanager
    async def _store(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as e:
            logger.exception("store_failed operation=%s", operation)
            raise StoreError(f"Database error during {operation}.") from e

    @asynccontextmanager
    async def _snapshot(self) -> AsyncIterator[asyncpg.Connection]:
        """
        One connection inside a read-only REPEATABLE READ transaction, so
        dependent reads all see the same data.
        """
        async with self._pool.acquire() as conn:  # type: asyncpg.Connection
            async with conn.transaction(isolation="repeatable_read", readonly=True):
                yield conn

    async def _upload_image(self, image: ImageFile, object_name: str) -> None:
        """
        Upload `image` as `object_name` and wait for the store to acknowledge
        it. Nothing referencing the image may be written before this returns.
        """
        try:
            await self._blobs.upload(object_name, image.data, content_type=image.content_type)
        except BlobStoreError as e:
            logger.warning("image_upload_failed object=%s", object_name, exc_info=True)
            raise UploadError(f"Failed to upload image {object_name!r}.") from e

    # -- reads --

    async def list_products(self) -> list[schemas.ProductListItem]:
        async with self._store("list_products"):
            rows = await repository.list_products(self._pool)
        return [_product_list_item(r) for r in rows]

    async def get_product(self, product_id: int) -> schemas.Product:
        require_id(product_id, what="product id")
        async with self._store("get_product"):
            row = await repository.get_product(self._pool, product_id)
        if row is None:
            raise NotFoundError(f"Product {product_id} not found.")
        return _product(row)

    async def products_by_ids(self, raw_ids: Any) -> list[schemas.Product]:
        ids = parse_id_list(raw_ids)
        if not ids:
            return []
        async with self._store("products_by_ids"):
            rows = await repository.get_products_by_ids(self._pool, ids)
        return [_product(r) for r in rows]

    async def products_by_subcategory(self, subcategory_id: int) -> schemas.SubcategoryBrowse:
        """
        Category browse page: the subcategory, its parent category and its
        products, read from one snapshot.
        """
        require_id(subcategory_id, what="subcategory id")
        async with self._store("products_by_subcategory"):
            async with self._snapshot() as conn:
                subcategory_row = await repository.get_subcategory(conn, subcategory_id)
                if subcategory_row is None:
                    raise NotFoundError(f"Subcategory {subcategory_id} not found.")

                category_id = _to_optional_int(subcategory_row.get("categoryid"))
                category_row = (
                    await repository.get_category(conn, category_id) if category_id is not None else None
                )
                if category_row is None:
                    raise NotFoundError(f"Category for subcategory {subcategory_id} not found.")

                product_rows = await repository.get_products_by_subcategory(conn, subcategory_id)

        return schemas.SubcategoryBrowse(
            category=_category(category_row),
            subcategory=_subcategory(subcategory_row),
            products=[_product(r) for r in product_rows],
        )

    async def search_products(self, raw_term: Any) -> list[schemas.Product]:
        term = normalize_search_term(raw_term)
        async with self._store("search_products"):
            rows = await repository.search_products_by_name(
                self._pool,
                term,
                limit=repository.SEARCH_RESULT_LIMIT,
            )
        return [_product(r) for r in rows]

    # -- writes --

    async def add_product(
        self,
        subcategory_id: int,
        *,
        name: Any,
        price: Any,
        discount: Any,
        description: str | None,
        image: ImageFile,
    ) -> schemas.ImageUpload:
        """
        Upload the product image, then insert the product row pointing at it.

        An upload failure aborts before anything is written. An insert failure
        (e.g. unknown subcategory) leaves the uploaded object orphaned.
        """
        require_id(subcategory_id, what="subcategory id")
        name = _require_name(name)
        price_value = _require_amount(price, what="price")
        discount_value = _require_amount(discount, what="discount")
        object_name = _require_image(image)

        await self._upload_image(image, object_name)
        image_url = self._blobs.public_url(object_name)

        async with self._store("add_product"):
            row = await repository.insert_product(
                self._pool,
                subcategory_id=subcategory_id,
                name=name,
                price=price_value,
                discount=discount_value,
                image_url=image_url,
                description=description,
            )
        if row is None:
            raise StoreError("Insert returned no row.")

        product_id = _to_int(row["id"])
        logger.info(
            "product_created product_id=%s subcategory_id=%s object=%s",
            product_id,
            subcategory_id,
            object_name,
        )
        return schemas.ImageUpload(
            id=product_id,
            filename=object_name,
            originalname=image.filename,
            size=len(image.data),
            path=self._blobs.container_path(object_name),
            url=image_url,
        )

    async def update_product(
        self,
        product_id: int,
        *,
        name: Any,
        price: Any,
        discount: Any,
        description: str | None = None,
        image: ImageFile | None = None,
    ) -> schemas.Message:
        """
        With an image: replace name, price, discount, image and description.
        Without: replace name, price and discount only.

        The previous image object is never deleted.
        """
        require_id(product_id, what="product id")
        name = _require_name(name)
        price_value = _require_amount(price, what="price")
        discount_value = _require_amount(discount, what="discount")

        if image is None:
            async with self._store("update_product"):
                row = await repository.update_product_fields(
                    self._pool,
                    product_id,
                    name=name,
                    price=price_value,
                    discount=discount_value,
                )
        else:
            object_name = _require_image(image)
            async with self._store("update_product"):
                exists = await repository.product_exists(self._pool, product_id)
            if not exists:
                raise NotFoundError(f"Product {product_id} not found.")

            await self._upload_image(image, object_name)
            async with self._store("update_product"):
                row = await repository.update_product_with_image(
                    self._pool,
                    product_id,
                    name=name,
                    price=price_value,
                    discount=discount_value,
                    image_url=self._blobs.public_url(object_name),
                    description=description,
                )

        if row is None:
            raise NotFoundError(f"Product {product_id} not found.")

        logger.info("product_updated product_id=%s image_replaced=%s", product_id, image is not None)
        return schemas.Message(message="Product updated successfully.")

    async def delete_product(self, product_id: int) -> schemas.Message:
        require_id(product_id, what="product id")
        async with self._store("delete_product"):
            row = await repository.delete_product(self._pool, product_id)
        if row is None:
            raise NotFoundError(f"Product {product_id} not found.")

        logger.info("product_deleted product_id=%s", product_id)
        return schemas.Message(message="Product deleted.")

