from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from products.dependencies import get_catalog
from products.service import ProductCatalog
from tests.fakes import FakeBlobStore, FakePool, InMemoryCatalogDB


@pytest.fixture
def events() -> list[str]:
    return []


@pytest.fixture
def catalog_db(monkeypatch, events) -> InMemoryCatalogDB:
    """Drinks(1) > Soda(10) > Cola(100), Cherry Cola(101); Drinks(1) > Juice(11) > Orange Juice(102)."""
    store = InMemoryCatalogDB(events)
    store.add_category(1, "Drinks")
    store.add_subcategory(10, "Soda", 1, image_url="https://blobs.example.test/images/soda.png")
    store.add_subcategory(11, "Juice", 1)
    store.add_product(
        100,
        "Cola",
        10,
        price="2.50",
        discount="0",
        image_url="https://blobs.example.test/images/cola.png",
        description="Classic cola",
    )
    store.add_product(101, "Cherry Cola", 10, price=3, discount=1)
    store.add_product(102, "Orange Juice", 11, price=4, discount=0)
    store.install(monkeypatch)
    return store


@pytest.fixture
def blob_store(events) -> FakeBlobStore:
    return FakeBlobStore(events)


@pytest.fixture
def pool() -> FakePool:
    return FakePool()


@pytest.fixture
def catalog(catalog_db, blob_store, pool) -> ProductCatalog:
    return ProductCatalog(pool, blob_store)


@pytest.fixture
def client(catalog):
    from main import app

    app.dependency_overrides[get_catalog] = lambda: catalog
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
