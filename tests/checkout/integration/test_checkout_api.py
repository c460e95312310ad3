"""Integration tests for the checkout endpoints via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from marketplace.api.handlers import register_error_handlers
from marketplace.api.routes import checkout_router

CUSTOMER_HEADERS = {"X-Customer-Id": "cust-001", "X-Customer-Email": "ada@example.com"}
URLS = {"success_url": "https://shop.example.com/success", "cancel_url": "https://shop.example.com/cart"}


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(checkout_router)
    register_error_handlers(app)
    return TestClient(app)


@pytest.fixture()
def cart_id(sellers, list_product, fill_cart):
    sellers.register_seller("seller-a", "Alpha Goods", payout_account="acct_alpha")
    list_product("prod-a", "seller-a", 25.0, 5)
    return fill_cart([("prod-a", 2)], customer_id="cust-001")


class TestCreateCheckoutSession:
    def test_returns_session_and_reference(self, client, cart_id):
        response = client.post(f"/checkout/{cart_id}", json=URLS, headers=CUSTOMER_HEADERS)

        assert response.status_code == 201
        data = response.json()
        assert data["session_id"].startswith("cs_test_")
        assert data["order_reference"].startswith("order_")
        assert data["url"].startswith("https://checkout.fake/")

    def test_unknown_cart_returns_404(self, client):
        response = client.post("/checkout/missing-cart", json=URLS, headers=CUSTOMER_HEADERS)

        assert response.status_code == 404
        assert response.json()["code"] == "CART_NOT_FOUND"

    def test_other_customers_cart_returns_403(self, client, cart_id):
        response = client.post(f"/checkout/{cart_id}", json=URLS, headers={"X-Customer-Id": "cust-999"})

        assert response.status_code == 403
        assert response.json()["code"] == "CART_ACCESS_DENIED"

    def test_validation_failure_returns_reason(self, client, catalogue, cart_id):
        catalogue.register_product("prod-a", "Product prod-a", 25.0, "seller-a", published=False)

        response = client.post(f"/checkout/{cart_id}", json=URLS, headers=CUSTOMER_HEADERS)

        assert response.status_code == 422
        assert response.json()["code"] == "ITEMS_UNAVAILABLE"

    def test_seller_without_payout_account_returns_422(self, client, sellers, cart_id):
        sellers.register_seller("seller-a", "Alpha Goods", payout_account=None)

        response = client.post(f"/checkout/{cart_id}", json=URLS, headers=CUSTOMER_HEADERS)

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "SELLERS_NOT_ONBOARDED"
        assert body["detail"] == [{"sellerId": "seller-a", "storeName": "Alpha Goods"}]

    def test_gateway_failure_returns_502(self, client, gateway, cart_id):
        gateway.configure(should_succeed=False, failure_reason="Stripe is down")

        response = client.post(f"/checkout/{cart_id}", json=URLS, headers=CUSTOMER_HEADERS)

        assert response.status_code == 502
        assert response.json()["code"] == "GATEWAY_ERROR"

    def test_missing_urls_fail_request_validation(self, client, cart_id):
        response = client.post(f"/checkout/{cart_id}", json={}, headers=CUSTOMER_HEADERS)
        assert response.status_code == 422


class TestCheckoutStatus:
    def test_reports_session_and_order_state(self, client, gateway, cart_id):
        created = client.post(f"/checkout/{cart_id}", json=URLS, headers=CUSTOMER_HEADERS).json()
        gateway.complete_session(created["session_id"])

        response = client.get(f"/checkout/status/{created['session_id']}", headers=CUSTOMER_HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "complete"
        assert data["payment_status"] == "paid"
        assert data["order_reference"] == created["order_reference"]
        assert data["order_status"] == "Pending"
        assert data["order_payment_status"] == "Pending"

    def test_unknown_session_returns_404(self, client):
        response = client.get("/checkout/status/cs_missing", headers=CUSTOMER_HEADERS)
        assert response.status_code == 404

    def test_other_customer_is_denied(self, client, cart_id):
        created = client.post(f"/checkout/{cart_id}", json=URLS, headers=CUSTOMER_HEADERS).json()

        response = client.get(f"/checkout/status/{created['session_id']}", headers={"X-Customer-Id": "cust-999"})

        assert response.status_code == 403
