"""
Pydantic schemas for catalog endpoints.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Category(CamelModel):
    id: int
    name: str


class Subcategory(CamelModel):
    id: int
    name: str
    image_url: str | None = None
    category_id: int


class Product(CamelModel):
    id: int
    name: str
    price: int
    discount: int
    image_url: str | None = None
    subcategory_id: int
    description: str | None = None


class ProductListItem(Product):
    subcategory_name: str | None = None


class SubcategoryBrowse(CamelModel):
    category: Category
    subcategory: Subcategory
    products: list[Product]


class ImageUpload(CamelModel):
    """Metadata of a product created together with its image."""

    id: int
    filename: str
    originalname: str
    size: int
    path: str
    url: str


class Message(BaseModel):
    message: str


class IdListRequest(BaseModel):
    # A list, or a JSON-encoded list string (legacy clients); validated by the service.
    ids: Any


class SearchRequest(CamelModel):
    search_string: Any = ""
