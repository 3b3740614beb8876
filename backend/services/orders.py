"""
Order lifecycle.

Create, update and delete keep the stock held by an order equal to its items:
stock is deducted when an order is created, given back exactly once when it
is cancelled or deleted, and re-balanced when its items are replaced. Each
operation is one ``atomic`` transaction covering the stock adjustments and
the order write.

    Pending <-> Processing <-> Shipped <-> Delivered   (free re-ordering)
    any of the above -> Cancelled                       (terminal)
"""

from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from backend.app.db.models.core_types import ACTIVE_ORDER_STATUSES, OrderStatus
from backend.app.db.models.models_v1 import Order, OrderItem, Supplier, utcnow
from backend.app.schemas.order import OrderCreate, OrderItemCreate, OrderUpdate
from backend.app.schemas.pagination import page_bounds
from backend.services import ledger, stock
from backend.services.errors import (
    InsufficientStock,
    InvalidTransition,
    OrderNotFound,
    ProductNotFound,
    SupplierNotFound,
    ValidationError,
)
from backend.services.transactions import atomic

logger = logging.getLogger(__name__)


# ---------- Helpers ----------
def _validate_items(items: Sequence[OrderItemCreate] | None) -> None:
    if not items:
        raise ValidationError("Order must contain at least one item.", field="items")
    for item in items:
        if item.qty is None or item.qty < 1:
            raise ValidationError(f"Quantity must be at least 1 (product_id {item.product_id})", field="items.qty")


def _require_supplier(db: Session, supplier_id: int) -> Supplier:
    supplier = db.get(Supplier, supplier_id)
    if supplier is None:
        raise SupplierNotFound(supplier_id, status_code=400)
    return supplier


def _lock_order(db: Session, order_id: int) -> Order:
    order = (
        db.execute(
            select(Order)
            .where(Order.id == order_id)
            .options(selectinload(Order.items))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalar_one_or_none()
    )
    if order is None:
        raise OrderNotFound(order_id)
    return order


def _take_stock(db: Session, order: Order, requested: Sequence[OrderItemCreate]) -> None:
    """Set the order's items at current prices and deduct their stock."""
    products = ledger.lock_products(db, [item.product_id for item in requested])
    for item in requested:
        if item.product_id not in products:
            raise ProductNotFound(item.product_id, status_code=400)

    order.set_items(
        [
            OrderItem(
                product_id=item.product_id,
                qty=item.qty,
                unit_price=products[item.product_id].price,
            )
            for item in requested
        ]
    )
    stock.deduct(db, order.items)


# ---------- Commands ----------
def create_order(db: Session, payload: OrderCreate) -> Order:
    _validate_items(payload.items)
    if payload.status == OrderStatus.cancelled:
        raise ValidationError("An order can not be created as Cancelled.", field="status")

    try:
        with atomic(db):
            _require_supplier(db, payload.supplier_id)

            order = Order(supplier_id=payload.supplier_id, status=payload.status)
            _take_stock(db, order, payload.items)

            db.add(order)
            db.flush()
    except InsufficientStock as exc:
        logger.warning("order rejected for supplier %s: %s", payload.supplier_id, exc.message)
        raise

    logger.info(
        "order %s created: status=%s total=%s products=%s",
        order.id,
        order.status.value,
        order.total_amount,
        sorted({i.product_id for i in order.items}),
    )
    return order


def update_order(db: Session, order_id: int, payload: OrderUpdate) -> Order:
    if payload.items is not None:
        _validate_items(payload.items)

    try:
        with atomic(db):
            order = _lock_order(db, order_id)
            current = order.status
            target = payload.status

            # rules first, nothing is mutated before they pass
            if current == OrderStatus.cancelled:
                if target is not None and target != OrderStatus.cancelled:
                    raise InvalidTransition(order.id, current, target)
                if payload.items is not None:
                    raise InvalidTransition(
                        order.id,
                        current,
                        current,
                        message="Cannot change the items of a cancelled order.",
                    )
            cancelling = target == OrderStatus.cancelled and current != OrderStatus.cancelled
            if cancelling and payload.items is not None:
                raise ValidationError("Items can not be changed while cancelling an order.", field="items")

            if payload.supplier_id is not None and payload.supplier_id != order.supplier_id:
                _require_supplier(db, payload.supplier_id)
                order.supplier_id = payload.supplier_id

            if cancelling:
                stock.restock(db, order.items, order_id=order.id)
            elif payload.items is not None:
                # old and new products locked together, in id order
                ledger.lock_products(
                    db,
                    [i.product_id for i in order.items] + [i.product_id for i in payload.items],
                )
                stock.restock(db, order.items, order_id=order.id)
                order.items.clear()
                db.flush()
                _take_stock(db, order, payload.items)

            if target is not None:
                order.status = target
            order.updated_at = utcnow()
            db.flush()
    except (InsufficientStock, InvalidTransition) as exc:
        logger.warning("order %s update rejected: %s", order_id, exc.message)
        raise

    logger.info("order %s updated: status=%s total=%s", order.id, order.status.value, order.total_amount)
    return order


def delete_order(db: Session, order_id: int) -> Order:
    """Delete an order, giving back its stock unless it was cancelled.

    The returned instance is detached but keeps its loaded items.
    """
    with atomic(db):
        order = _lock_order(db, order_id)
        if order.status in ACTIVE_ORDER_STATUSES:
            stock.restock(db, order.items, order_id=order.id)
        db.delete(order)
        db.flush()

    logger.info("order %s deleted (was %s)", order_id, order.status.value)
    return order


# ---------- Queries ----------
def get_order(db: Session, order_id: int) -> Order:
    order = (
        db.execute(select(Order).where(Order.id == order_id).options(selectinload(Order.items)))
        .scalar_one_or_none()
    )
    if order is None:
        raise OrderNotFound(order_id)
    return order


def list_orders(
    db: Session,
    *,
    status: OrderStatus | None = None,
    supplier_id: int | None = None,
    page: int = 1,
    limit: int | None = None,
) -> tuple[list[Order], int]:
    page, limit = page_bounds(page, limit)

    stmt = select(Order)
    if status is not None:
        stmt = stmt.where(Order.status == status)
    if supplier_id is not None:
        stmt = stmt.where(Order.supplier_id == supplier_id)

    total_count = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    rows = (
        db.execute(
            stmt.options(selectinload(Order.items))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        .scalars()
        .all()
    )
    return list(rows), int(total_count)
