from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from ..domain import Brand, Order, OrderLine, Product, User
from ..errors import StorageError
from ..ports import (
    BrandRepository,
    IdempotencyRepository,
    OrderRepository,
    ProductRepository,
    UnitOfWork,
    UserRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class Tables:
    users: Dict[int, User] = field(default_factory=dict)
    brands: Dict[int, Brand] = field(default_factory=dict)
    products: Dict[int, Product] = field(default_factory=dict)
    orders: Dict[int, Order] = field(default_factory=dict)
    lines: Dict[int, List[OrderLine]] = field(default_factory=dict)
    idempotency: Dict[str, Tuple[int, int]] = field(default_factory=dict)
    next_ids: Dict[str, int] = field(default_factory=dict)

    def copy(self) -> "Tables":
        # Products and orders are mutated in place, so copy them row by row.
        return Tables(
            users=dict(self.users),
            brands=dict(self.brands),
            products={k: replace(v) for k, v in self.products.items()},
            orders={k: replace(v, lines=[]) for k, v in self.orders.items()},
            lines={k: list(v) for k, v in self.lines.items()},
            idempotency=dict(self.idempotency),
            next_ids=dict(self.next_ids),
        )

    def next_id(self, table: str) -> int:
        n = self.next_ids.get(table, 0) + 1
        self.next_ids[table] = n
        return n


class InMemoryDatabase:
    """
    Process-local store for tests and local runs.

    One unit of work at a time holds the lock and works on a private copy of
    the tables; commit swaps the copy in, so nothing is visible before commit.
    """

    def __init__(self) -> None:
        self.tables = Tables()
        self.lock = threading.Lock()

    # Seed helpers (handy for tests/demo)
    def add_user(self, user_id: int, name: str, email: str, address: str = "") -> User:
        with self.lock:
            user = User(id=user_id, name=name, email=email, address=address)
            self.tables.users[user_id] = user
            self.tables.next_ids["users"] = max(self.tables.next_ids.get("users", 0), user_id)
            return user


class _Repo:
    def __init__(self, uow: "InMemoryUnitOfWork"):
        self.uow = uow

    @property
    def t(self) -> Tables:
        return self.uow.working()


class InMemoryUserRepository(_Repo, UserRepository):
    def get(self, user_id: int) -> Optional[User]:
        return self.t.users.get(user_id)


class InMemoryBrandRepository(_Repo, BrandRepository):
    def get(self, brand_id: int) -> Optional[Brand]:
        return self.t.brands.get(brand_id)

    def add(self, name: str) -> Brand:
        brand = Brand(id=self.t.next_id("brands"), name=name)
        self.t.brands[brand.id] = brand
        return brand


class InMemoryProductRepository(_Repo, ProductRepository):
    def get(self, product_id: int) -> Optional[Product]:
        p = self.t.products.get(product_id)
        return replace(p) if p else None

    def add(self, brand_id: int, name: str, qty: int, price: int) -> Product:
        p = Product(id=self.t.next_id("products"), brand_id=brand_id, name=name, qty=qty, price=price)
        self.t.products[p.id] = p
        return replace(p)

    def list_by_brand(self, brand_id: int) -> List[Product]:
        return [replace(p) for p in sorted(self.t.products.values(), key=lambda p: p.id) if p.brand_id == brand_id]

    def decrement_stock(self, product_id: int, qty: int) -> bool:
        p = self.t.products.get(product_id)
        if not p or p.qty < qty:
            return False
        p.qty -= qty
        return True


class InMemoryOrderRepository(_Repo, OrderRepository):
    def add(self, user_id: int, date: datetime) -> Order:
        order = Order(id=self.t.next_id("transactions"), user_id=user_id, date=date, grand_total=0)
        self.t.orders[order.id] = order
        self.t.lines[order.id] = []
        return replace(order, lines=[])

    def add_line(self, order_id: int, product_id: int, qty: int, sub_total: int) -> OrderLine:
        if order_id not in self.t.orders:
            raise StorageError(f"order {order_id} does not exist")
        line = OrderLine(order_id=order_id, product_id=product_id, qty=qty, sub_total=sub_total)
        self.t.lines[order_id].append(line)
        return line

    def set_grand_total(self, order_id: int, grand_total: int) -> None:
        self.t.orders[order_id].grand_total = grand_total

    def get(self, order_id: int) -> Optional[Order]:
        o = self.t.orders.get(order_id)
        return replace(o, lines=[]) if o else None

    def lines(self, order_id: int) -> List[OrderLine]:
        return list(self.t.lines.get(order_id, []))


class InMemoryIdempotencyRepository(_Repo, IdempotencyRepository):
    def get(self, key: str) -> Optional[Tuple[int, int]]:
        return self.t.idempotency.get(key)

    def add(self, key: str, user_id: int, order_id: int) -> None:
        if key in self.t.idempotency:
            raise StorageError(f"idempotency key {key!r} already recorded")
        self.t.idempotency[key] = (user_id, order_id)


class InMemoryUnitOfWork(UnitOfWork):
    def __init__(self, db: InMemoryDatabase, timeout: Optional[float] = None):
        self.db = db
        self._timeout = timeout
        self._deadline: Optional[float] = None
        self._working: Optional[Tables] = None

    def __enter__(self) -> "InMemoryUnitOfWork":
        self.db.lock.acquire()
        self._working = self.db.tables.copy()
        if self._timeout:
            self._deadline = time.monotonic() + self._timeout
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        try:
            if exc_type:
                self.rollback()
        finally:
            self._working = None
            self.db.lock.release()

    def working(self) -> Tables:
        assert self._working is not None, "UnitOfWork is not entered."
        if self._deadline is not None and time.monotonic() > self._deadline:
            raise StorageError("unit of work exceeded its deadline")
        return self._working

    @property
    def users(self) -> UserRepository:
        return InMemoryUserRepository(self)

    @property
    def brands(self) -> BrandRepository:
        return InMemoryBrandRepository(self)

    @property
    def products(self) -> ProductRepository:
        return InMemoryProductRepository(self)

    @property
    def orders(self) -> OrderRepository:
        return InMemoryOrderRepository(self)

    @property
    def idempotency(self) -> IdempotencyRepository:
        return InMemoryIdempotencyRepository(self)

    def commit(self) -> None:
        working = self.working()
        self.db.tables = working
        self._working = working.copy()
        logger.debug("in-memory unit of work committed")

    def rollback(self) -> None:
        if self._working is not None:
            self._working = self.db.tables.copy()
