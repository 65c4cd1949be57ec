"""
End-to-end API tests through the Flask test client.
"""

from datetime import date

import pytest

from justsell.models import AgeVerificationRecord, Product, SecurityEvent, Transaction
from justsell.time_utils import today
from conftest import PASSWORD, auth_headers, get_auth_token


def _years_ago(years: int) -> str:
    now = today()
    return date(now.year - years, now.month, min(now.day, 28)).isoformat()


def _cart(vape, lighter, **extra):
    payload = {
        "items": [
            {"product_id": vape.id, "quantity": 2},
            {"product_id": lighter.id, "quantity": 1},
        ],
        "payment_method": "CASH",
        "cash_tendered": "60.00",
        "age_verification_completed": True,
    }
    payload.update(extra)
    return payload


class TestAuth:
    def test_requires_token(self, client):
        assert client.get("/api/products").status_code == 401
        response = client.get("/api/products", headers=auth_headers("not-a-token"))
        assert response.status_code == 401

    def test_login_and_me(self, client, cashier):
        response = client.post("/api/auth/login", json={"username": "cashier", "password": PASSWORD})
        assert response.status_code == 200
        assert response.json["user"]["role"] == "CASHIER"
        assert "CREATE_TRANSACTION" in response.json["permissions"]

        me = client.get("/api/auth/me", headers=auth_headers(response.json["token"]))
        assert me.status_code == 200
        assert me.json["user"]["username"] == "cashier"

    def test_bad_login_logged(self, client, db_session, cashier):
        response = client.post("/api/auth/login", json={"username": "cashier", "password": "wrong"})
        assert response.status_code == 401

        event = db_session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").one()
        assert event.success is False

    def test_login_requires_both_fields(self, client):
        assert client.post("/api/auth/login", json={"username": "cashier"}).status_code == 400

    def test_logout_revokes_token(self, client, cashier):
        token = get_auth_token(client, "cashier")
        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401
        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 401


class TestProducts:
    def test_cashier_cannot_create(self, client, db_session, cashier, cashier_headers):
        response = client.post(
            "/api/products", json={"sku": "X-1", "name": "X", "price": "1.00"}, headers=cashier_headers
        )
        assert response.status_code == 403
        assert response.json["required_permission"] == "MANAGE_PRODUCTS"

        event = db_session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").one()
        assert event.user_id == cashier.id
        assert event.success is False

    def test_manager_creates_product(self, client, manager_headers):
        payload = {
            "sku": "VPE-200",
            "name": "Disposable Vape",
            "category": "Vape",
            "price": "19.99",
            "quantity": 12,
            "age_restricted": True,
        }
        response = client.post("/api/products", json=payload, headers=manager_headers)
        assert response.status_code == 201
        assert response.json["price_cents"] == 1999
        assert response.json["age_restricted"] is True

        duplicate = client.post("/api/products", json=payload, headers=manager_headers)
        assert duplicate.status_code == 409

    def test_invalid_payload(self, client, manager_headers):
        response = client.post(
            "/api/products", json={"sku": "X-1", "name": "X", "price_cents": "abc"}, headers=manager_headers
        )
        assert response.status_code == 400

        response = client.post(
            "/api/products",
            json={"sku": "X-1", "name": "X", "price_cents": 100, "store_id": 3},
            headers=manager_headers,
        )
        assert response.status_code == 400

    def test_list_and_search(self, client, cashier_headers, vape, lighter):
        response = client.get("/api/products?search=vape", headers=cashier_headers)
        assert response.status_code == 200
        assert [p["sku"] for p in response.json["items"]] == ["VPE-001"]

    def test_stock_adjustment(self, client, db_session, manager_headers, lighter):
        response = client.patch(
            f"/api/products/{lighter.id}/stock", json={"quantity_delta": 3}, headers=manager_headers
        )
        assert response.status_code == 200
        assert response.json["quantity"] == 8

        response = client.patch(
            f"/api/products/{lighter.id}/stock", json={"quantity_delta": -20}, headers=manager_headers
        )
        assert response.status_code == 400

    def test_unknown_product(self, client, cashier_headers):
        assert client.get("/api/products/999", headers=cashier_headers).status_code == 404


class TestTransactions:
    def test_checkout(self, client, db_session, cashier_headers, vape, lighter):
        response = client.post("/api/transactions", json=_cart(vape, lighter), headers=cashier_headers)
        assert response.status_code == 201

        txn = response.json["transaction"]
        assert txn["subtotal_cents"] == 5297
        assert txn["tax_cents"] == 424
        assert txn["total_cents"] == 5721
        assert txn["change_given_cents"] == 279
        assert len(txn["line_items"]) == 2

        db_session.expire_all()
        assert db_session.get(Product, vape.id).quantity == 8
        assert db_session.get(Product, lighter.id).quantity == 4

    def test_age_gate(self, client, db_session, cashier_headers, vape, lighter):
        response = client.post(
            "/api/transactions",
            json=_cart(vape, lighter, age_verification_completed=False),
            headers=cashier_headers,
        )
        assert response.status_code == 400
        assert response.json["requires_age_verification"] is True
        assert db_session.query(Transaction).count() == 0

    def test_missing_items(self, client, cashier_headers):
        response = client.post(
            "/api/transactions", json={"payment_method": "CARD"}, headers=cashier_headers
        )
        assert response.status_code == 400

    def test_unknown_product(self, client, cashier_headers):
        response = client.post(
            "/api/transactions",
            json={"items": [{"product_id": 999, "quantity": 1}], "payment_method": "CARD"},
            headers=cashier_headers,
        )
        assert response.status_code == 404

    def test_insufficient_stock_message(self, client, cashier_headers, lighter):
        response = client.post(
            "/api/transactions",
            json={"items": [{"product_id": lighter.id, "quantity": 6}], "payment_method": "CARD"},
            headers=cashier_headers,
        )
        assert response.status_code == 400
        assert response.json["error"] == "Insufficient stock for Refillable Lighter. Available: 5, Requested: 6"

    def test_list_detail_receipt_and_print(self, client, app, cashier_headers, vape, lighter, monkeypatch):
        created = client.post("/api/transactions", json=_cart(vape, lighter), headers=cashier_headers)
        txn_id = created.json["transaction"]["id"]

        listing = client.get("/api/transactions?page=1&limit=10", headers=cashier_headers)
        assert listing.status_code == 200
        assert listing.json["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}
        assert listing.json["transactions"][0]["id"] == txn_id

        assert client.get("/api/transactions?limit=500", headers=cashier_headers).status_code == 400

        detail = client.get(f"/api/transactions/{txn_id}", headers=cashier_headers)
        assert detail.json["line_items"][0]["product_sku"] == "VPE-001"

        receipt = client.get(f"/api/transactions/{txn_id}/receipt", headers=cashier_headers)
        assert receipt.status_code == 200
        assert receipt.json["store_tax_id"] == "12-3456789"
        assert "TOTAL:" in receipt.json["text"]
        assert receipt.json["html"].startswith("<!DOCTYPE html>")

        printed = []
        monkeypatch.setitem(app.config, "RECEIPT_PRINTER", printed.append)
        response = client.post(f"/api/transactions/{txn_id}/print", headers=cashier_headers)
        assert response.status_code == 200
        assert response.json["printed_at"].endswith("Z")
        assert len(printed) == 1

    def test_missing_transaction(self, client, cashier_headers):
        assert client.get("/api/transactions/999", headers=cashier_headers).status_code == 404
        assert client.get("/api/transactions/999/receipt", headers=cashier_headers).status_code == 404


class TestAgeVerification:
    def _verify(self, client, headers, years):
        return client.post(
            "/api/age-verification",
            json={
                "id_type": "drivers_license",
                "id_number": "d123 4567",
                "date_of_birth": _years_ago(years),
                "id_expiration_date": "2099-01-01",
                "id_issuing_state": "NY",
            },
            headers=headers,
        )

    def test_adult_verified(self, client, cashier_headers):
        response = self._verify(client, cashier_headers, 30)
        assert response.status_code == 201
        assert response.json["is_verified"] is True
        assert response.json["calculated_age"] == 30
        assert response.json["verification"]["id_number"] == "D1234567"

    def test_override_flow(self, client, db_session, cashier_headers, manager_headers, vape, lighter):
        denied = self._verify(client, cashier_headers, 19)
        assert denied.status_code == 201
        assert denied.json["is_verified"] is False
        assert denied.json["requires_manager_override"] is True
        record_id = denied.json["verification"]["id"]

        blocked = client.post(
            "/api/transactions", json=_cart(vape, lighter, age_verification_id=record_id),
            headers=cashier_headers,
        )
        assert blocked.status_code == 400

        cashier_override = client.post(
            f"/api/age-verification/{record_id}/override", json={"reason": "Second ID"},
            headers=cashier_headers,
        )
        assert cashier_override.status_code == 403

        override = client.post(
            f"/api/age-verification/{record_id}/override", json={"reason": "Second ID"},
            headers=manager_headers,
        )
        assert override.status_code == 201
        assert override.json["verification"]["outcome"] == "OVERRIDDEN"
        override_id = override.json["verification"]["id"]

        again = client.post(
            f"/api/age-verification/{record_id}/override", json={"reason": "Again"},
            headers=manager_headers,
        )
        assert again.status_code == 400

        sale = client.post(
            "/api/transactions", json=_cart(vape, lighter, age_verification_id=override_id),
            headers=cashier_headers,
        )
        assert sale.status_code == 201
        assert sale.json["transaction"]["age_verification_id"] == override_id

        history = client.get("/api/age-verification/history", headers=cashier_headers)
        assert history.status_code == 200
        assert history.json["count"] == 2
        assert db_session.query(SecurityEvent).filter_by(event_type="AGE_VERIFICATION_OVERRIDE").count() == 1

    def test_under_eighteen_not_overridable(self, client, manager_headers):
        denied = self._verify(client, manager_headers, 16)
        assert denied.json["requires_manager_override"] is False

        response = client.post(
            f"/api/age-verification/{denied.json['verification']['id']}/override",
            json={"reason": "Looks older"},
            headers=manager_headers,
        )
        assert response.status_code == 400

    def test_id_number_encrypted_at_rest(self, client, db_session, cashier_headers):
        record_id = self._verify(client, cashier_headers, 30).json["verification"]["id"]
        db_session.expire_all()
        assert "D1234567" not in db_session.get(AgeVerificationRecord, record_id).id_number

    @pytest.mark.parametrize(
        "override",
        [
            {"id_type": "library_card"},
            {"id_number": "123"},
            {"date_of_birth": "not-a-date"},
            {"id_expiration_date": None},
        ],
    )
    def test_invalid_input(self, client, cashier_headers, override):
        payload = {
            "id_type": "drivers_license",
            "id_number": "D1234567",
            "date_of_birth": "1990-01-01",
            "id_expiration_date": "2099-01-01",
        }
        payload.update(override)
        response = client.post("/api/age-verification", json=payload, headers=cashier_headers)
        assert response.status_code == 400


class TestCustomers:
    def test_create_and_read_decrypted(self, client, cashier_headers):
        response = client.post(
            "/api/customers",
            json={"first_name": "Sam", "last_name": "Lee", "email": "sam@example.com", "phone": "555-0100"},
            headers=cashier_headers,
        )
        assert response.status_code == 201
        assert response.json["email"] == "sam@example.com"

        fetched = client.get(f"/api/customers/{response.json['id']}", headers=cashier_headers)
        assert fetched.json["phone"] == "555-0100"

        search = client.get("/api/customers?search=lee", headers=cashier_headers)
        assert [c["email"] for c in search.json["items"]] == ["sam@example.com"]

    def test_invalid_email(self, client, cashier_headers):
        response = client.post(
            "/api/customers",
            json={"first_name": "Sam", "last_name": "Lee", "email": "not-an-email"},
            headers=cashier_headers,
        )
        assert response.status_code == 400

    def test_update(self, client, cashier_headers, customer):
        response = client.put(
            f"/api/customers/{customer.id}", json={"phone": "555-0111"}, headers=cashier_headers
        )
        assert response.status_code == 200
        assert response.json["phone"] == "555-0111"
        assert response.json["email"] == "jane@example.com"

    def test_loyalty_adjustment(self, client, cashier_headers, customer):
        earn = client.post(
            f"/api/customers/{customer.id}/loyalty",
            json={"operation": "earn", "points": 40},
            headers=cashier_headers,
        )
        assert earn.status_code == 200
        assert earn.json["loyalty_points"] == 40

        over = client.post(
            f"/api/customers/{customer.id}/loyalty",
            json={"operation": "redeem", "points": 50},
            headers=cashier_headers,
        )
        assert over.status_code == 400
        assert over.json["error"] == "Insufficient points. Customer has 40 points."

    def test_deactivate_requires_manager(self, client, cashier_headers, manager_headers, customer):
        assert client.delete(f"/api/customers/{customer.id}", headers=cashier_headers).status_code == 403
        assert client.delete(f"/api/customers/{customer.id}", headers=manager_headers).status_code == 200

        search = client.get("/api/customers", headers=manager_headers)
        assert search.json["count"] == 0


class TestSystem:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json["status"] == "healthy"
        assert set(response.json["checks"]) == {"database", "session_service", "field_encryption"}

    def test_version(self, client):
        response = client.get("/version")
        assert response.status_code == 200
        assert response.json["api_version"] == "1.0.0"
