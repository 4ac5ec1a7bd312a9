"""
Typed failures raised by the product catalog.

The catalog never builds HTTP responses; `api/main.py` maps these to status
codes.
"""

from __future__ import annotations


class CatalogError(RuntimeError):
    pass


class ValidationError(CatalogError):
    """Malformed input, rejected before it reaches the store."""


class NotFoundError(CatalogError):
    """A referenced product, subcategory or category does not exist."""


class StoreError(CatalogError):
    """The database rejected a query or could not be reached."""


class UploadError(CatalogError):
    """The blob store did not accept an image upload."""
