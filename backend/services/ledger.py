"""
Product ledger: the only writer of ``Product.stock``.

Rows are locked with SELECT ... FOR UPDATE and refreshed from the database
before the new value is computed, so concurrent adjustments of one product
serialize and never read a stale count. Callers own the transaction.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import Product
from backend.services.errors import InsufficientStock, ProductNotFound

logger = logging.getLogger(__name__)


def lock_products(db: Session, product_ids: Iterable[int]) -> dict[int, Product]:
    """
    Lock the existing products among ``product_ids``.

    Locks are taken in ascending id order so that transactions touching
    overlapping products queue up instead of deadlocking. The order only
    holds for this call: a caller that adjusts several products must lock
    all of them here first, before any ``adjust_stock``. Missing ids are
    simply absent from the result.
    """
    product_ids = sorted({int(pid) for pid in product_ids if pid is not None})
    if not product_ids:
        return {}

    rows = (
        db.execute(
            select(Product)
            .where(Product.id.in_(product_ids))
            .order_by(Product.id.asc())
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .all()
    )
    return {int(p.id): p for p in rows}


def get_locked_product(db: Session, product_id: int) -> Product | None:
    return (
        db.execute(
            select(Product)
            .where(Product.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalar_one_or_none()
    )


def adjust_stock(db: Session, product_id: int, delta: int) -> Product:
    """
    Apply ``delta`` to a product's stock if the result stays >= 0.

    Raises ProductNotFound or InsufficientStock without touching the row.
    """
    product = get_locked_product(db, product_id)
    if product is None:
        raise ProductNotFound(product_id)

    if delta == 0:
        return product

    new_stock = product.stock + delta
    if new_stock < 0:
        raise InsufficientStock(
            product_id=int(product.id),
            product_name=product.name,
            requested=-delta,
            available=product.stock,
        )

    product.stock = new_stock
    db.flush()
    logger.debug("stock product=%s delta=%+d -> %s", product_id, delta, new_stock)
    return product
