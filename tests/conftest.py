"""Pytest fixtures: the same seeded shop on the in-memory and SQLite backends."""

from functools import partial

import pytest
from fastapi.testclient import TestClient

from storefront.adapters.memory import InMemoryDatabase, InMemoryUnitOfWork
from storefront.adapters.sql import SqlAlchemyUnitOfWork
from storefront.config import Settings
from storefront.db import init_db, make_engine, make_session_factory, seed_users
from storefront.main import create_app

USERS = [
    {"id": 1, "name": "Alice", "email": "alice@example.com", "address": "1 Main St"},
    {"id": 2, "name": "Bob", "email": "bob@example.com", "address": "2 Main St"},
]

# (name, qty, price); ids 1..3 under brand 1
PRODUCTS = [
    ("Canvas tote", 5, 100),
    ("Leather belt", 5, 250),
    ("Wool scarf", 5, 400),
]


def _seed_catalog(uow_factory) -> None:
    with uow_factory() as uow:
        brand = uow.brands.add("Acme")
        for name, qty, price in PRODUCTS:
            uow.products.add(brand.id, name, qty, price)
        uow.commit()


@pytest.fixture(params=["memory", "sqlite"])
def backend(request) -> str:
    return request.param


@pytest.fixture
def uow_factory(backend, tmp_path):
    if backend == "memory":
        db = InMemoryDatabase()
        for u in USERS:
            db.add_user(u["id"], u["name"], u["email"], u["address"])
        factory = partial(InMemoryUnitOfWork, db, 30)
        _seed_catalog(factory)
        yield factory
        return

    settings = Settings(db_type="sqlite", database_url=f"sqlite:///{tmp_path / 'shop.sqlite3'}")
    engine = make_engine(settings)
    init_db(engine)
    seed_users(engine, USERS)
    factory = partial(SqlAlchemyUnitOfWork, make_session_factory(engine), 30)
    _seed_catalog(factory)
    yield factory
    engine.dispose()


@pytest.fixture
def settings() -> Settings:
    return Settings(db_type="memory")


@pytest.fixture
def client(uow_factory, settings) -> TestClient:
    return TestClient(create_app(settings, uow_factory=uow_factory))


def stock(uow_factory, product_id: int) -> int:
    with uow_factory() as uow:
        return uow.products.get(product_id).qty


def drain(uow_factory, product_id: int) -> None:
    """Set a product's stock to zero through the conditional decrement."""
    qty = stock(uow_factory, product_id)
    with uow_factory() as uow:
        assert uow.products.decrement_stock(product_id, qty)
        uow.commit()
