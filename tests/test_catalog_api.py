"""HTTP tests for /brand and /product."""
import pytest

from storefront.catalog import CatalogService
from storefront.errors import BrandNotFound, ProductNotFound


def test_create_brand(client):
    res = client.post("/brand", json={"name": "Globex"})

    assert res.status_code == 200
    assert res.json() == {"status": 200, "message": "brand created successfully", "data": None}


@pytest.mark.parametrize("payload", [{}, {"name": ""}, {"title": "Globex"}])
def test_create_brand_invalid(client, payload):
    res = client.post("/brand", json=payload)

    assert res.status_code == 500
    assert res.json()["message"] == "Invalid json structure"


def test_brand_get_not_allowed(client):
    res = client.get("/brand")

    assert res.status_code == 405
    assert res.json()["message"] == "Method not Allowed"
    assert res.json()["error"]["error_user_msg"] == "Method Not Allowed"


def test_create_product(client):
    res = client.post("/product", json={"brand_id": 1, "name": "Rain jacket", "qty": 3, "price": 900})

    assert res.status_code == 200
    assert res.json()["message"] == "product created successfully"

    fetched = client.get("/product", params={"id": 4}).json()
    assert fetched["data"] == {"id": 4, "brand_id": 1, "name": "Rain jacket", "qty": 3, "price": 900}


def test_create_product_unknown_brand(client):
    res = client.post("/product", json={"brand_id": 9, "name": "Rain jacket", "qty": 3, "price": 900})

    assert res.status_code == 500
    assert res.json()["message"] == "Brand ID not found"


@pytest.mark.parametrize(
    "payload",
    [
        {"brand_id": 1, "name": "x", "qty": -1, "price": 1},
        {"brand_id": 1, "name": "x", "qty": 1, "price": -5},
        {"brand_id": 0, "name": "x", "qty": 1, "price": 1},
        {"brand_id": 1, "qty": 1, "price": 1},
    ],
)
def test_create_product_invalid(client, payload):
    assert client.post("/product", json=payload).json()["message"] == "Invalid json structure"


def test_get_product(client):
    res = client.get("/product", params={"id": 2})

    assert res.status_code == 200
    assert res.json()["message"] == "Success"
    assert res.json()["data"] == {"id": 2, "brand_id": 1, "name": "Leather belt", "qty": 5, "price": 250}


@pytest.mark.parametrize(
    "params, message",
    [
        ({}, "Parameter ID not found"),
        ({"id": "two"}, "Parameter ID is not numeric"),
        ({"id": "2 "}, "Parameter ID is not numeric"),
        ({"id": "0x2"}, "Parameter ID is not numeric"),
        ({"id": "99"}, "Error fetching the product"),
    ],
)
def test_get_product_errors(client, params, message):
    res = client.get("/product", params=params)

    assert res.status_code == 500
    assert res.json()["message"] == message


def test_products_by_brand(client):
    client.post("/brand", json={"name": "Globex"})
    client.post("/product", json={"brand_id": 2, "name": "Umbrella", "qty": 1, "price": 50})

    acme = client.get("/product/brand", params={"id": 1}).json()["data"]
    globex = client.get("/product/brand", params={"id": 2}).json()["data"]
    empty = client.get("/product/brand", params={"id": 3}).json()

    assert [p["name"] for p in acme] == ["Canvas tote", "Leather belt", "Wool scarf"]
    assert [p["name"] for p in globex] == ["Umbrella"]
    assert empty["status"] == 200
    assert empty["data"] == []


def test_catalog_service_reads(uow_factory):
    catalog = CatalogService(uow_factory)

    assert catalog.get_brand(1).name == "Acme"
    with pytest.raises(BrandNotFound):
        catalog.get_brand(50)
    with pytest.raises(ProductNotFound):
        catalog.get_product(50)
    with pytest.raises(BrandNotFound):
        catalog.create_product(50, "Orphan", 1, 1)
    assert [p.id for p in catalog.products_by_brand(1)] == [1, 2, 3]
