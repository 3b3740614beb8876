from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from backend.app.db.models.core_types import OrderStatus


class OrderItemCreate(BaseModel):
    product_id: int
    qty: int = Field(ge=1)


class OrderCreate(BaseModel):
    supplier_id: int
    items: list[OrderItemCreate] = Field(min_length=1)
    status: OrderStatus = OrderStatus.pending


class OrderUpdate(BaseModel):
    status: OrderStatus | None = None
    supplier_id: int | None = None
    items: list[OrderItemCreate] | None = Field(default=None, min_length=1)


class OrderItemRead(BaseModel):
    product_id: int
    qty: int
    unit_price: Decimal  # captured at order time
    line_total: Decimal

    class Config:
        from_attributes = True


class OrderRead(BaseModel):
    id: int
    supplier_id: int
    status: OrderStatus
    total_amount: Decimal
    created_at: datetime
    updated_at: datetime
    items: list[OrderItemRead]

    class Config:
        from_attributes = True


class OrderDeleted(BaseModel):
    message: str
    deleted_order: OrderRead
