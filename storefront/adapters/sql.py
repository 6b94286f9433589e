from __future__ import annotations

import functools
import logging
import time
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .. import models
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


def storage_errors(fn):
    """Translate driver/ORM failures into StorageError at the adapter boundary."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.exception("%s failed", fn.__qualname__)
            raise StorageError(f"{fn.__qualname__} failed") from e

    return wrapper


def _product(row: models.Product) -> Product:
    return Product(id=row.id, brand_id=row.brand_id, name=row.name, qty=row.qty, price=row.price)


def _line(row: models.TransactionDetail) -> OrderLine:
    return OrderLine(order_id=row.transaction_id, product_id=row.product_id, qty=row.qty, sub_total=row.sub_total)


class SqlAlchemyUserRepository(UserRepository):
    def __init__(self, session: Session):
        self.session = session

    @storage_errors
    def get(self, user_id: int) -> Optional[User]:
        row = self.session.get(models.User, user_id)
        if not row:
            return None
        return User(id=row.id, name=row.name, email=row.email, address=row.address)


class SqlAlchemyBrandRepository(BrandRepository):
    def __init__(self, session: Session):
        self.session = session

    @storage_errors
    def get(self, brand_id: int) -> Optional[Brand]:
        row = self.session.get(models.Brand, brand_id)
        return Brand(id=row.id, name=row.name) if row else None

    @storage_errors
    def add(self, name: str) -> Brand:
        row = models.Brand(name=name)
        self.session.add(row)
        self.session.flush()
        return Brand(id=row.id, name=row.name)


class SqlAlchemyProductRepository(ProductRepository):
    def __init__(self, session: Session):
        self.session = session

    @storage_errors
    def get(self, product_id: int) -> Optional[Product]:
        row = self.session.execute(
            select(models.Product).where(models.Product.id == product_id)
        ).scalar_one_or_none()
        return _product(row) if row else None

    @storage_errors
    def add(self, brand_id: int, name: str, qty: int, price: int) -> Product:
        row = models.Product(brand_id=brand_id, name=name, qty=qty, price=price)
        self.session.add(row)
        self.session.flush()
        return _product(row)

    @storage_errors
    def list_by_brand(self, brand_id: int) -> List[Product]:
        rows = self.session.execute(
            select(models.Product).where(models.Product.brand_id == brand_id).order_by(models.Product.id)
        ).scalars().all()
        return [_product(r) for r in rows]

    @storage_errors
    def decrement_stock(self, product_id: int, qty: int) -> bool:
        res = self.session.execute(
            update(models.Product)
            .where(models.Product.id == product_id, models.Product.qty >= qty)
            .values(qty=models.Product.qty - qty)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount == 1


class SqlAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: Session):
        self.session = session

    @storage_errors
    def add(self, user_id: int, date: datetime) -> Order:
        row = models.Transaction(user_id=user_id, date=date, grand_total=0)
        self.session.add(row)
        self.session.flush()  # get row.id
        return Order(id=row.id, user_id=row.user_id, date=row.date, grand_total=row.grand_total)

    @storage_errors
    def add_line(self, order_id: int, product_id: int, qty: int, sub_total: int) -> OrderLine:
        row = models.TransactionDetail(transaction_id=order_id, product_id=product_id, qty=qty, sub_total=sub_total)
        self.session.add(row)
        self.session.flush()
        return _line(row)

    @storage_errors
    def set_grand_total(self, order_id: int, grand_total: int) -> None:
        self.session.execute(
            update(models.Transaction)
            .where(models.Transaction.id == order_id)
            .values(grand_total=grand_total)
            .execution_options(synchronize_session=False)
        )

    @storage_errors
    def get(self, order_id: int) -> Optional[Order]:
        row = self.session.execute(
            select(models.Transaction).where(models.Transaction.id == order_id)
        ).scalar_one_or_none()
        if not row:
            return None
        return Order(id=row.id, user_id=row.user_id, date=row.date, grand_total=row.grand_total)

    @storage_errors
    def lines(self, order_id: int) -> List[OrderLine]:
        rows = self.session.execute(
            select(models.TransactionDetail)
            .where(models.TransactionDetail.transaction_id == order_id)
            .order_by(models.TransactionDetail.id)
        ).scalars().all()
        return [_line(r) for r in rows]


class SqlAlchemyIdempotencyRepository(IdempotencyRepository):
    def __init__(self, session: Session):
        self.session = session

    @storage_errors
    def get(self, key: str) -> Optional[Tuple[int, int]]:
        row = self.session.get(models.OrderIdempotencyKey, key)
        return (row.user_id, row.transaction_id) if row else None

    @storage_errors
    def add(self, key: str, user_id: int, order_id: int) -> None:
        self.session.add(models.OrderIdempotencyKey(key=key, user_id=user_id, transaction_id=order_id))
        self.session.flush()


class SqlAlchemyUnitOfWork(UnitOfWork):
    def __init__(self, session_factory: sessionmaker, timeout: Optional[float] = None):
        self._session_factory = session_factory
        self._timeout = timeout
        self._deadline: Optional[float] = None
        self.session: Session | None = None

    @storage_errors
    def __enter__(self) -> "SqlAlchemyUnitOfWork":
        self.session = self._session_factory()
        try:
            self.session.begin()
            if self._timeout:
                self._deadline = time.monotonic() + self._timeout
                if self.session.get_bind().dialect.name == "postgresql":
                    # SET cannot take bind parameters
                    ms = int(self._timeout * 1000)
                    self.session.execute(text(f"SET LOCAL statement_timeout = {ms}"))
        except SQLAlchemyError:
            self.session.close()
            self.session = None
            raise
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        try:
            if exc_type:
                # the original exception must reach the caller
                try:
                    self.session.rollback()
                except SQLAlchemyError:
                    logger.exception("rollback after %s failed", exc_type.__name__)
        finally:
            if self.session:
                self.session.close()
                self.session = None

    def _entered(self) -> Session:
        assert self.session is not None, "UnitOfWork is not entered."
        return self.session

    @property
    def users(self) -> UserRepository:
        return SqlAlchemyUserRepository(self._entered())

    @property
    def brands(self) -> BrandRepository:
        return SqlAlchemyBrandRepository(self._entered())

    @property
    def products(self) -> ProductRepository:
        return SqlAlchemyProductRepository(self._entered())

    @property
    def orders(self) -> OrderRepository:
        return SqlAlchemyOrderRepository(self._entered())

    @property
    def idempotency(self) -> IdempotencyRepository:
        return SqlAlchemyIdempotencyRepository(self._entered())

    @storage_errors
    def commit(self) -> None:
        session = self._entered()
        if self._deadline is not None and time.monotonic() > self._deadline:
            session.rollback()
            raise StorageError("unit of work exceeded its deadline")
        session.commit()

    @storage_errors
    def rollback(self) -> None:
        self._entered().rollback()
