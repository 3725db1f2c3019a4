# Overview: Pytest coverage for product CRUD and stock-derived status.

"""
Product Tests

- status is always derived from stock (0 / 1..threshold / above)
- SKU is unique across all users
- validation lists every offending field
"""

import pytest

from bizdash.models import Product
from bizdash.models.inventory import (
    STATUS_IN_STOCK,
    STATUS_LOW_STOCK,
    STATUS_OUT_OF_STOCK,
    stock_status,
)
from bizdash.services import records_service
from bizdash.validation import DuplicateSku, ValidationError

from conftest import product_payload


class TestStockStatus:

    @pytest.mark.parametrize("stock, expected", [
        (0, STATUS_OUT_OF_STOCK),
        (1, STATUS_LOW_STOCK),
        (5, STATUS_LOW_STOCK),
        (10, STATUS_LOW_STOCK),
        (11, STATUS_IN_STOCK),
        (50, STATUS_IN_STOCK),
    ])
    def test_default_threshold(self, stock, expected):
        assert stock_status(stock) == expected

    def test_custom_threshold(self):
        assert stock_status(3, low_stock_threshold=2) == STATUS_IN_STOCK
        assert stock_status(2, low_stock_threshold=2) == STATUS_LOW_STOCK


class TestCreateProduct:
    """POST /api/products"""

    @pytest.mark.parametrize("stock, expected", [
        (0, "out-of-stock"),
        (5, "low-stock"),
        (50, "in-stock"),
    ])
    def test_status_derived_on_create(self, client, user_a, stock, expected):
        resp = client.post("/api/products", json=product_payload(sku=f"S-{stock}", stock=stock),
                           headers=user_a.headers)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["message"] == "Product added successfully"
        assert body["product"]["status"] == expected
        assert body["product"]["owner_id"] == user_a.id
        assert body["id"] == body["product"]["id"]

    def test_client_status_is_ignored(self, client, user_a):
        resp = client.post("/api/products", json=product_payload(stock=0, status="in-stock"),
                           headers=user_a.headers)
        assert resp.status_code == 201
        assert resp.get_json()["product"]["status"] == "out-of-stock"

    def test_owner_comes_from_token_not_body(self, client, user_a, user_b):
        resp = client.post("/api/products", json=product_payload(owner_id=user_b.id, user_id=user_b.id),
                           headers=user_a.headers)
        assert resp.status_code == 201
        assert resp.get_json()["product"]["owner_id"] == user_a.id

    def test_missing_fields_listed(self, client, user_a):
        resp = client.post("/api/products", json={"name": "Lonely"}, headers=user_a.headers)
        assert resp.status_code == 400
        body = resp.get_json()
        assert set(body["fields"]) == {"category", "sku", "stock", "price", "cost"}
        assert body["error"].startswith("Missing required fields")

    @pytest.mark.parametrize("field, value", [
        ("stock", -1),
        ("price", -0.01),
        ("cost", "abc"),
        ("stock", 2.5),
        ("price", "1e309"),
        ("stock", 2**31),
        ("stock", "99999999999999999999"),
    ])
    def test_invalid_values_rejected(self, client, user_a, field, value):
        resp = client.post("/api/products", json=product_payload(**{field: value}),
                           headers=user_a.headers)
        assert resp.status_code == 400
        assert field in resp.get_json()["fields"]

    def test_numeric_strings_accepted(self, client, user_a):
        resp = client.post("/api/products", json=product_payload(stock="12", price="9.99", cost="4"),
                           headers=user_a.headers)
        assert resp.status_code == 201
        product = resp.get_json()["product"]
        assert product["stock"] == 12
        assert product["price"] == pytest.approx(9.99)
        assert product["status"] == "in-stock"

    def test_unknown_field_rejected(self, client, user_a):
        resp = client.post("/api/products", json=product_payload(colour="red"), headers=user_a.headers)
        assert resp.status_code == 400
        assert resp.get_json()["fields"] == ["colour"]

    def test_sku_unique_across_users(self, client, user_a, user_b):
        first = client.post("/api/products", json=product_payload(sku="SHARED"), headers=user_a.headers)
        second = client.post("/api/products", json=product_payload(sku="SHARED"), headers=user_b.headers)
        assert first.status_code == 201
        assert second.status_code == 400
        assert second.get_json()["error"] == "SKU already exists"


class TestReadProducts:

    def test_list_newest_updated_first(self, client, user_a):
        ids = []
        for sku in ("A-1", "A-2", "A-3"):
            ids.append(client.post("/api/products", json=product_payload(sku=sku),
                                   headers=user_a.headers).get_json()["id"])

        client.put(f"/api/products/{ids[0]}", json={"stock": 40}, headers=user_a.headers)

        listed = client.get("/api/products", headers=user_a.headers).get_json()
        assert [p["id"] for p in listed] == [ids[0], ids[2], ids[1]]

    def test_get_one(self, client, user_a):
        created = client.post("/api/products", json=product_payload(), headers=user_a.headers).get_json()
        resp = client.get(f"/api/products/{created['id']}", headers=user_a.headers)
        assert resp.status_code == 200
        assert resp.get_json()["sku"] == "W-1"

    def test_get_missing(self, client, user_a):
        resp = client.get("/api/products/424242", headers=user_a.headers)
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Product not found"


class TestUpdateProduct:
    """PUT /api/products/<id>"""

    def test_stock_change_recomputes_status(self, client, user_a):
        created = client.post("/api/products", json=product_payload(stock=50), headers=user_a.headers).get_json()
        assert created["product"]["status"] == "in-stock"

        resp = client.put(f"/api/products/{created['id']}", json={"stock": 0}, headers=user_a.headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["message"] == "Product updated successfully"
        assert body["product"]["status"] == "out-of-stock"
        assert body["product"]["stock"] == 0

    def test_partial_update_keeps_other_fields(self, client, user_a):
        created = client.post("/api/products", json=product_payload(supplier="Acme"),
                              headers=user_a.headers).get_json()
        resp = client.put(f"/api/products/{created['id']}", json={"price": 12.5}, headers=user_a.headers)
        product = resp.get_json()["product"]
        assert product["price"] == 12.5
        assert product["supplier"] == "Acme"
        assert product["name"] == "Widget"

    def test_status_in_update_is_ignored(self, client, user_a):
        created = client.post("/api/products", json=product_payload(stock=3), headers=user_a.headers).get_json()
        resp = client.put(f"/api/products/{created['id']}", json={"status": "in-stock"}, headers=user_a.headers)
        assert resp.status_code == 200
        assert resp.get_json()["product"]["status"] == "low-stock"

    def test_blank_required_field_rejected(self, client, user_a):
        created = client.post("/api/products", json=product_payload(), headers=user_a.headers).get_json()
        resp = client.put(f"/api/products/{created['id']}", json={"name": "  "}, headers=user_a.headers)
        assert resp.status_code == 400
        assert resp.get_json()["fields"] == ["name"]

    def test_sku_collision_on_update(self, client, user_a):
        client.post("/api/products", json=product_payload(sku="TAKEN"), headers=user_a.headers)
        other = client.post("/api/products", json=product_payload(sku="FREE"), headers=user_a.headers).get_json()
        resp = client.put(f"/api/products/{other['id']}", json={"sku": "TAKEN"}, headers=user_a.headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "SKU already exists"

    def test_update_missing_product(self, client, user_a):
        resp = client.put("/api/products/999", json={"stock": 1}, headers=user_a.headers)
        assert resp.status_code == 404


class TestDeleteProduct:

    def test_delete_then_gone(self, client, user_a):
        created = client.post("/api/products", json=product_payload(), headers=user_a.headers).get_json()
        resp = client.delete(f"/api/products/{created['id']}", headers=user_a.headers)
        assert resp.status_code == 200
        assert resp.get_json()["message"] == "Product deleted successfully"

        again = client.delete(f"/api/products/{created['id']}", headers=user_a.headers)
        assert again.status_code == 404
        assert client.get("/api/products", headers=user_a.headers).get_json() == []


class TestProductRepository:
    """Service-level behaviour without HTTP."""

    def test_create_and_duplicate(self, db_session, user_a, user_b):
        repo = records_service.products(db_session)
        product = repo.create(user_a.id, product_payload(sku="REPO-1", stock=0))
        assert product.status == STATUS_OUT_OF_STOCK

        with pytest.raises(DuplicateSku):
            repo.create(user_b.id, product_payload(sku="REPO-1"))

    def test_validation_error_carries_fields(self, db_session, user_a):
        repo = records_service.products(db_session)
        with pytest.raises(ValidationError) as excinfo:
            repo.create(user_a.id, {"name": "x", "stock": -5})
        assert "stock" in excinfo.value.fields
        assert "sku" in excinfo.value.fields

    def test_threshold_is_configurable(self, db_session, user_a):
        repo = records_service.products(db_session, low_stock_threshold=2)
        assert repo.create(user_a.id, product_payload(stock=3)).status == STATUS_IN_STOCK

    def test_recompute_status_repairs_rows(self, db_session, user_a):
        repo = records_service.products(db_session)
        product = repo.create(user_a.id, product_payload(stock=0))
        db_session.query(Product).filter_by(id=product.id).update({"status": STATUS_IN_STOCK})
        db_session.commit()

        assert repo.recompute_status(user_a.id) == 1
        assert db_session.get(Product, product.id).status == STATUS_OUT_OF_STOCK
