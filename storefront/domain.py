from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List


@dataclass(slots=True)
class User:
    id: int
    name: str
    email: str
    address: str


@dataclass(slots=True)
class Brand:
    id: int
    name: str


@dataclass(slots=True)
class Product:
    id: int
    brand_id: int
    name: str
    qty: int
    price: int


@dataclass(slots=True)
class OrderLine:
    order_id: int
    product_id: int
    qty: int
    sub_total: int


@dataclass(slots=True)
class Order:
    id: int
    user_id: int
    date: datetime
    grand_total: int
    lines: List[OrderLine] = field(default_factory=list)


@dataclass(slots=True)
class LineRequest:
    """One requested (product, quantity) pair of a new order."""

    product_id: int
    qty: int
