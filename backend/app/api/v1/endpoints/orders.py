from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.db.models.core_types import OrderStatus
from backend.app.schemas.order import OrderCreate, OrderDeleted, OrderRead, OrderUpdate
from backend.app.schemas.pagination import Page, page_bounds
from backend.services import orders
from backend.services.transactions import retry_on_conflict

router = APIRouter(prefix="/orders")


@router.get("", response_model=Page[OrderRead])
def list_orders(
    status: OrderStatus | None = None,
    supplier_id: int | None = None,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
):
    page, limit = page_bounds(page, limit)
    rows, total_count = orders.list_orders(db, status=status, supplier_id=supplier_id, page=page, limit=limit)
    return Page[OrderRead].build(
        [OrderRead.model_validate(o) for o in rows],
        page=page,
        limit=limit,
        total_count=total_count,
    )


@router.get("/{order_id}", response_model=OrderRead)
def get_order(order_id: int, db: Session = Depends(get_db)):
    return OrderRead.model_validate(orders.get_order(db, order_id))


@router.post("", response_model=OrderRead, status_code=201)
def create_order(payload: OrderCreate, db: Session = Depends(get_db)):
    order = retry_on_conflict(lambda: orders.create_order(db, payload))
    return OrderRead.model_validate(order)


@router.patch("/{order_id}", response_model=OrderRead)
@router.put("/{order_id}", response_model=OrderRead, include_in_schema=False)
def update_order(order_id: int, payload: OrderUpdate, db: Session = Depends(get_db)):
    order = retry_on_conflict(lambda: orders.update_order(db, order_id, payload))
    return OrderRead.model_validate(order)


@router.delete("/{order_id}", response_model=OrderDeleted)
def delete_order(order_id: int, db: Session = Depends(get_db)):
    order = retry_on_conflict(lambda: orders.delete_order(db, order_id))
    return OrderDeleted(
        message=f"Order {order_id} successfully deleted.",
        deleted_order=OrderRead.model_validate(order),
    )
