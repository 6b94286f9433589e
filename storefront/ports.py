from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from .domain import Brand, Order, OrderLine, Product, User


class UserRepository(ABC):
    @abstractmethod
    def get(self, user_id: int) -> Optional[User]: ...


class BrandRepository(ABC):
    @abstractmethod
    def get(self, brand_id: int) -> Optional[Brand]: ...

    @abstractmethod
    def add(self, name: str) -> Brand: ...


class ProductRepository(ABC):
    @abstractmethod
    def get(self, product_id: int) -> Optional[Product]: ...

    @abstractmethod
    def add(self, brand_id: int, name: str, qty: int, price: int) -> Product: ...

    @abstractmethod
    def list_by_brand(self, brand_id: int) -> List[Product]: ...

    @abstractmethod
    def decrement_stock(self, product_id: int, qty: int) -> bool:
        """
        Subtract qty from the product's stock only if at least qty is on hand,
        as a single store-level operation. Returns False when nothing changed.
        """


class OrderRepository(ABC):
    @abstractmethod
    def add(self, user_id: int, date: datetime) -> Order: ...

    @abstractmethod
    def add_line(self, order_id: int, product_id: int, qty: int, sub_total: int) -> OrderLine: ...

    @abstractmethod
    def set_grand_total(self, order_id: int, grand_total: int) -> None: ...

    @abstractmethod
    def get(self, order_id: int) -> Optional[Order]: ...

    @abstractmethod
    def lines(self, order_id: int) -> List[OrderLine]: ...


class IdempotencyRepository(ABC):
    @abstractmethod
    def get(self, key: str) -> Optional[Tuple[int, int]]:
        """(user_id, order_id) already recorded for key, if any."""

    @abstractmethod
    def add(self, key: str, user_id: int, order_id: int) -> None: ...


class UnitOfWork(ABC):
    """
    One transaction boundary. Repositories are only usable between __enter__
    and __exit__; leaving the block without commit() discards every write.
    """

    @abstractmethod
    def __enter__(self) -> "UnitOfWork": ...

    @abstractmethod
    def __exit__(self, exc_type, exc_value, traceback) -> None: ...

    @property
    @abstractmethod
    def users(self) -> UserRepository: ...

    @property
    @abstractmethod
    def brands(self) -> BrandRepository: ...

    @property
    @abstractmethod
    def products(self) -> ProductRepository: ...

    @property
    @abstractmethod
    def orders(self) -> OrderRepository: ...

    @property
    @abstractmethod
    def idempotency(self) -> IdempotencyRepository: ...

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...


UnitOfWorkFactory = Callable[[], UnitOfWork]
