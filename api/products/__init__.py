"""
Product catalog feature: products, read-only categories/subcategories, and
product images in the blob store.

Layout: `router.py` (HTTP), `service.py` (orchestration), `repository.py` (SQL).
"""
