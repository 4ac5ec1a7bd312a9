"""HTTP tests: request decoding, camelCase payloads and error status mapping."""

from __future__ import annotations

import asyncpg
from fastapi import status

from products.dependencies import get_max_upload_bytes


class TestReadEndpoints:
    def test_browse_subcategory(self, client):
        response = client.get("/subcategories/10/products")

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["category"] == {"id": 1, "name": "Drinks"}
        assert body["subcategory"] == {
            "id": 10,
            "name": "Soda",
            "imageUrl": "https://blobs.example.test/images/soda.png",
            "categoryId": 1,
        }
        assert [p["name"] for p in body["products"]] == ["Cola", "Cherry Cola"]
        assert body["products"][0]["subcategoryId"] == 10

    def test_browse_unknown_subcategory_is_404(self, client):
        response = client.get("/subcategories/999/products")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert "999" in response.json()["detail"]

    def test_non_numeric_id_is_rejected(self, client):
        response = client.get("/products/abc")

        assert response.status_code == 422

    def test_list_products(self, client):
        response = client.get("/products")

        assert response.status_code == status.HTTP_200_OK
        first = response.json()[0]
        assert first["id"] == 100
        assert first["subcategoryName"] == "Soda"
        assert first["imageUrl"] == "https://blobs.example.test/images/cola.png"

    def test_get_product(self, client):
        response = client.get("/products/101")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["name"] == "Cherry Cola"

    def test_get_missing_product_is_404(self, client):
        assert client.get("/products/999").status_code == status.HTTP_404_NOT_FOUND

    def test_products_by_ids(self, client):
        response = client.post("/products/by-ids", json={"ids": [100, 102, 999]})

        assert response.status_code == status.HTTP_200_OK
        assert sorted(p["id"] for p in response.json()) == [100, 102]

    def test_products_by_ids_legacy_string(self, client):
        response = client.post("/products/by-ids", json={"ids": "[101]"})

        assert response.status_code == status.HTTP_200_OK
        assert [p["id"] for p in response.json()] == [101]

    def test_products_by_ids_malformed_is_400(self, client):
        response = client.post("/products/by-ids", json={"ids": "1) OR (1=1"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_out_of_range_path_id_is_400(self, client):
        response = client.get("/products/99999999999999999999")

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_out_of_range_id_list_is_400(self, client):
        response = client.post("/products/by-ids", json={"ids": [100, 2**70]})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_search(self, client):
        response = client.post("/products/search", json={"searchString": "juice"})

        assert response.status_code == status.HTTP_200_OK
        assert [p["name"] for p in response.json()] == ["Orange Juice"]

    def test_store_error_hides_details(self, client, catalog_db):
        catalog_db.fail_with = asyncpg.UndefinedTableError("relation \"products\" does not exist")

        response = client.get("/products")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"detail": "Internal server error."}


class TestWriteEndpoints:
    def test_add_product(self, client, blob_store):
        response = client.post(
            "/subcategories/10/products",
            data={"name": "Fizz", "price": "2", "discount": "0", "description": "Lemon soda"},
            files={"file": ("fizz.png", b"\x89PNG", "image/png")},
        )

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["filename"] == "fizz.png"
        assert body["originalname"] == "fizz.png"
        assert body["size"] == 4
        assert body["path"] == "images/fizz.png"
        assert body["url"] == "https://blobs.example.test/images/fizz.png"
        assert blob_store.content_types["fizz.png"] == "image/png"

        created = client.get(f"/products/{body['id']}").json()
        assert created["imageUrl"] == body["url"]

    def test_add_product_requires_file(self, client):
        response = client.post(
            "/subcategories/10/products",
            data={"name": "Fizz", "price": "2", "discount": "0"},
        )

        assert response.status_code == 422

    def test_add_product_upload_failure_is_502(self, client, blob_store, catalog_db):
        blob_store.fail = True
        count = len(catalog_db.products)

        response = client.post(
            "/subcategories/10/products",
            data={"name": "Fizz", "price": "2", "discount": "0"},
            files={"file": ("fizz.png", b"\x89PNG", "image/png")},
        )

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert len(catalog_db.products) == count

    def test_add_product_too_large_is_413(self, client, blob_store):
        from main import app

        app.dependency_overrides[get_max_upload_bytes] = lambda: 8
        response = client.post(
            "/subcategories/10/products",
            data={"name": "Fizz", "price": "2", "discount": "0"},
            files={"file": ("big.png", b"x" * 9, "image/png")},
        )

        assert response.status_code == 413
        assert blob_store.objects == {}

    def test_add_product_invalid_price_is_400(self, client):
        response = client.post(
            "/subcategories/10/products",
            data={"name": "Fizz", "price": "cheap", "discount": "0"},
            files={"file": ("fizz.png", b"\x89PNG", "image/png")},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_update_without_file(self, client):
        response = client.put(
            "/products/100",
            data={"name": "Cola Light", "price": "2", "discount": "1"},
        )

        assert response.status_code == status.HTTP_200_OK
        product = client.get("/products/100").json()
        assert product["name"] == "Cola Light"
        assert product["imageUrl"] == "https://blobs.example.test/images/cola.png"
        assert product["description"] == "Classic cola"

    def test_update_with_file(self, client):
        response = client.put(
            "/products/100",
            data={"name": "Cola", "price": "2", "discount": "0", "description": "New recipe"},
            files={"file": ("cola-v2.png", b"\x89PNG", "image/png")},
        )

        assert response.status_code == status.HTTP_200_OK
        product = client.get("/products/100").json()
        assert product["imageUrl"] == "https://blobs.example.test/images/cola-v2.png"
        assert product["description"] == "New recipe"

    def test_update_missing_is_404(self, client):
        response = client.put("/products/999", data={"name": "x", "price": "1", "discount": "0"})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_delete(self, client):
        assert client.delete("/products/101").status_code == status.HTTP_200_OK
        assert client.get("/products/101").status_code == status.HTTP_404_NOT_FOUND

    def test_delete_missing_is_404(self, client):
        assert client.delete("/products/999").status_code == status.HTTP_404_NOT_FOUND


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
