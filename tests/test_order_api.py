"""HTTP tests for /order."""
import pytest
from fastapi.testclient import TestClient

from conftest import drain, stock
from storefront.config import Settings
from storefront.main import create_app

INTERNAL = {
    "message": "Internal Server Error",
    "reason": "",
    "error_user_title": "Internal Server Error",
    "error_user_msg": "Internal Server Error",
}

ORDER = {
    "user_id": 1,
    "detail": [
        {"product_id": 1, "qty": 1},
        {"product_id": 2, "qty": 1},
        {"product_id": 3, "qty": 1},
    ],
}


def test_create_order_success(client, uow_factory):
    res = client.post("/order", json=ORDER)

    assert res.status_code == 200
    body = res.json()
    assert body["status"] == 200
    assert body["message"] == "order created successfully"
    assert "error" not in body
    data = body["data"]
    assert data["id"] == 1
    assert data["user_id"] == 1
    assert data["grand_total"] == 750
    assert [d["product_id"] for d in data["detail"]] == [1, 2, 3]
    assert all(d["transaction_id"] == 1 for d in data["detail"])
    assert [stock(uow_factory, pid) for pid in (1, 2, 3)] == [4, 4, 4]


def test_create_order_out_of_stock(client, uow_factory):
    drain(uow_factory, 1)

    res = client.post("/order", json=ORDER)

    assert res.status_code == 500
    assert res.json() == {"status": 500, "message": "Internal Server Error", "data": None, "error": INTERNAL}
    assert [stock(uow_factory, pid) for pid in (1, 2, 3)] == [0, 5, 5]
    assert client.get("/order", params={"id": 1}).json()["message"] == "Error fetching the transaction"


def test_create_order_unknown_user(client, uow_factory):
    res = client.post("/order", json={**ORDER, "user_id": 999})

    assert res.status_code == 500
    assert res.json()["message"] == "User ID not found"
    assert res.json()["error"] == INTERNAL
    assert stock(uow_factory, 1) == 5


def test_create_order_unknown_product(client):
    res = client.post("/order", json={"user_id": 1, "detail": [{"product_id": 77, "qty": 1}]})

    assert res.status_code == 500
    assert res.json()["message"] == "Product ID not found"


def test_user_is_checked_before_products(client):
    res = client.post("/order", json={"user_id": 999, "detail": [{"product_id": 77, "qty": 1}]})

    assert res.json()["message"] == "User ID not found"


@pytest.mark.parametrize(
    "payload",
    [
        {"user_id": 1, "detail": []},
        {"user_id": 0, "detail": [{"product_id": 1, "qty": 1}]},
        {"user_id": 1, "detail": [{"product_id": 1, "qty": 0}]},
        {"detail": [{"product_id": 1, "qty": 1}]},
        {"user_id": "abc", "detail": [{"product_id": 1, "qty": 1}]},
    ],
)
def test_create_order_invalid_structure(client, payload):
    res = client.post("/order", json=payload)

    assert res.status_code == 500
    assert res.json()["message"] == "Invalid json structure"


def test_create_order_malformed_json(client):
    res = client.post("/order", content=b"{not json", headers={"Content-Type": "application/json"})

    assert res.status_code == 500
    assert res.json()["message"] == "Error processing request"


def test_create_order_with_idempotency_key(client, uow_factory):
    headers = {"Idempotency-Key": "checkout-42"}
    first = client.post("/order", json=ORDER, headers=headers).json()
    second = client.post("/order", json=ORDER, headers=headers).json()

    assert first["data"]["id"] == second["data"]["id"]
    assert stock(uow_factory, 1) == 4


def test_idempotency_key_of_another_user(client, uow_factory):
    headers = {"Idempotency-Key": "checkout-42"}
    client.post("/order", json=ORDER, headers=headers)

    res = client.post("/order", json={**ORDER, "user_id": 2}, headers=headers)

    assert res.status_code == 500
    assert res.json()["message"] == "Invalid json structure"
    assert stock(uow_factory, 1) == 4


def test_idempotency_key_too_long(client, uow_factory):
    res = client.post("/order", json=ORDER, headers={"Idempotency-Key": "k" * 129})

    assert res.status_code == 500
    assert res.json()["message"] == "Invalid json structure"
    assert stock(uow_factory, 1) == 5
    assert client.post("/order", json=ORDER, headers={"Idempotency-Key": "k" * 128}).json()["status"] == 200


def test_get_order(client):
    created = client.post("/order", json=ORDER).json()["data"]

    res = client.get("/order", params={"id": created["id"]})

    assert res.status_code == 200
    body = res.json()
    assert body["message"] == "Success"
    assert body["data"] == created
    assert client.get("/order", params={"id": created["id"]}).json() == body


@pytest.mark.parametrize(
    "params, message",
    [
        ({}, "Parameter ID not found"),
        ({"id": ""}, "Parameter ID not found"),
        ({"id": "a"}, "Parameter ID is not numeric"),
        ({"id": " 7"}, "Parameter ID is not numeric"),
        ({"id": "1_0"}, "Parameter ID is not numeric"),
        ({"id": "\u0663"}, "Parameter ID is not numeric"),
        ({"id": "404"}, "Error fetching the transaction"),
    ],
)
def test_get_order_errors(client, params, message):
    res = client.get("/order", params=params)

    assert res.status_code == 500
    assert res.json() == {"status": 500, "message": message, "data": None, "error": INTERNAL}


def test_unsupported_method(client):
    res = client.delete("/order")

    assert res.status_code == 405
    assert res.json()["message"] == "Method not Allowed"


def test_unknown_route(client):
    res = client.get("/nope")

    assert res.status_code == 404
    assert res.json()["message"] == "404 page not found"
    assert res.json()["error"]["error_user_title"] == "Not Found"


def test_strict_status_codes(uow_factory):
    client = TestClient(create_app(Settings(db_type="memory", strict_status_codes=True), uow_factory=uow_factory))

    missing_user = client.post("/order", json={**ORDER, "user_id": 999})
    assert missing_user.status_code == 404
    assert missing_user.json()["message"] == "User ID not found"
    assert missing_user.json()["error"]["message"] == "Not Found"

    invalid = client.post("/order", json={"user_id": 1, "detail": []})
    assert invalid.status_code == 400
    assert invalid.json()["message"] == "Invalid json structure"

    assert client.get("/order", params={"id": "x"}).status_code == 400
    assert client.get("/order", params={"id": "99"}).status_code == 404

    drain(uow_factory, 1)
    assert client.post("/order", json=ORDER).status_code == 500


def test_api_prefix(uow_factory):
    client = TestClient(create_app(Settings(db_type="memory", api_prefix="/api/shop"), uow_factory=uow_factory))

    assert client.post("/api/shop/order", json=ORDER).status_code == 200
    assert client.get("/order", params={"id": 1}).status_code == 404


def test_metrics_and_health(client):
    client.post("/order", json=ORDER)

    assert client.get("/health").text == "ok"
    metrics = client.get("/metrics").text
    assert "orders_created_total" in metrics
    assert "http_requests_total" in metrics
