"""
Stock adjustment protocol.

Applies the stock effect of a whole order: ``deduct`` when the order takes
stock, ``restock`` when its effect is removed. Both must run inside
``backend.services.transactions.atomic`` together with the order write; on
the first failure the caller's transaction is rolled back, so a partial
adjustment is never committed.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, Protocol

from sqlalchemy.orm import Session

from backend.services import ledger
from backend.services.errors import DataIntegrityFault, ProductNotFound

logger = logging.getLogger(__name__)


class StockLine(Protocol):
    product_id: int
    qty: int


def _quantities(items: Iterable[StockLine]) -> list[tuple[int, int]]:
    # one adjustment per product, in lock order
    totals: Counter[int] = Counter()
    for item in items:
        totals[int(item.product_id)] += int(item.qty)
    return sorted(totals.items())


def deduct(db: Session, items: Iterable[StockLine]) -> None:
    quantities = _quantities(items)
    ledger.lock_products(db, [product_id for product_id, _ in quantities])
    for product_id, qty in quantities:
        ledger.adjust_stock(db, product_id, -qty)


def restock(db: Session, items: Iterable[StockLine], order_id: int | None = None) -> None:
    quantities = _quantities(items)
    ledger.lock_products(db, [product_id for product_id, _ in quantities])
    for product_id, qty in quantities:
        try:
            ledger.adjust_stock(db, product_id, qty)
        except ProductNotFound as exc:
            logger.error("restock of order %s failed: product %s is gone", order_id, product_id)
            raise DataIntegrityFault(product_id, order_id=order_id) from exc
