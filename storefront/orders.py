from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from .domain import LineRequest, Order, Product
from .errors import (
    InsufficientStock,
    OrderNotFound,
    ProductNotFound,
    UserNotFound,
    ValidationError,
)
from .ports import UnitOfWork, UnitOfWorkFactory

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class OrderWorkflow:
    """
    Creates orders and reads them back.

    create_order validates the user and every product before the first write,
    then inserts the header, decrements stock and inserts the lines, all inside
    one unit of work. Either everything commits or nothing does.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory, clock: Callable[[], datetime] = utcnow):
        self.uow_factory = uow_factory
        self.clock = clock

    def create_order(
        self,
        user_id: int,
        lines: Sequence[LineRequest],
        idempotency_key: Optional[str] = None,
    ) -> Order:
        if user_id <= 0:
            raise ValidationError("user_id must be > 0")
        if not lines:
            raise ValidationError("detail must not be empty")
        for line in lines:
            if line.product_id <= 0 or line.qty <= 0:
                raise ValidationError("product_id and qty must be > 0")

        with self.uow_factory() as uow:
            if idempotency_key:
                existing = uow.idempotency.get(idempotency_key)
                if existing is not None:
                    owner, order_id = existing
                    if owner != user_id:
                        logger.warning(
                            "idempotency key %r of user %s reused by user %s", idempotency_key, owner, user_id
                        )
                        raise ValidationError("idempotency key belongs to another user")
                    logger.info("order %s replayed for idempotency key %r", order_id, idempotency_key)
                    return self._load(uow, order_id)

            if uow.users.get(user_id) is None:
                raise UserNotFound(user_id)

            products: List[Product] = []
            for line in lines:
                product = uow.products.get(line.product_id)
                if product is None:
                    raise ProductNotFound(line.product_id)
                products.append(product)

            order = self._persist(uow, user_id, lines, products)
            if idempotency_key:
                uow.idempotency.add(idempotency_key, user_id, order.id)
            uow.commit()

        logger.info(
            "order %s created for user %s: %d line(s), grand_total=%s",
            order.id, user_id, len(order.lines), order.grand_total,
        )
        return order

    def _persist(
        self, uow: UnitOfWork, user_id: int, lines: Sequence[LineRequest], products: Sequence[Product]
    ) -> Order:
        order = uow.orders.add(user_id, self.clock())
        grand_total = 0
        for line, product in zip(lines, products):
            if not uow.products.decrement_stock(line.product_id, line.qty):
                logger.warning(
                    "order for user %s rejected: insufficient stock for product %s (requested %s)",
                    user_id, line.product_id, line.qty,
                )
                raise InsufficientStock(line.product_id, line.qty)
            sub_total = product.price * line.qty
            order.lines.append(uow.orders.add_line(order.id, line.product_id, line.qty, sub_total))
            grand_total += sub_total
        uow.orders.set_grand_total(order.id, grand_total)
        order.grand_total = grand_total
        return order

    def get_order(self, order_id: int) -> Order:
        with self.uow_factory() as uow:
            return self._load(uow, order_id)

    def _load(self, uow: UnitOfWork, order_id: int) -> Order:
        order = uow.orders.get(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        order.lines = uow.orders.lines(order_id) or []
        return order
