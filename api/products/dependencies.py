"""
Dependencies for catalog routes.

The catalog and settings are built once in the app lifespan and kept on
`app.state`; tests override `get_catalog` with fakes.
"""

from __future__ import annotations

from fastapi import Request

from core.settings import DEFAULT_MAX_UPLOAD_BYTES

from .service import ProductCatalog


def get_catalog(request: Request) -> ProductCatalog:
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        raise RuntimeError("Product catalog is not initialized. Check the app lifespan.")
    return catalog


def get_max_upload_bytes(request: Request) -> int:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        return DEFAULT_MAX_UPLOAD_BYTES
    return settings.max_upload_bytes
