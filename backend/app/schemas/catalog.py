from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class ProductRead(BaseModel):
    id: int
    sku: str
    name: str
    price: Decimal
    stock: int  # read only, written by the ledger
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SupplierRead(BaseModel):
    id: int
    name: str
    contact: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
