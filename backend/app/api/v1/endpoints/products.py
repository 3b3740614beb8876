from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.schemas.catalog import ProductRead
from backend.app.schemas.pagination import Page, page_bounds
from backend.services import catalog
from backend.services.transactions import retry_on_conflict

router = APIRouter(prefix="/products")


class ProductCreate(BaseModel):
    sku: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    stock: int = Field(default=0, ge=0)


class ProductUpdate(BaseModel):
    sku: str | None = Field(default=None, min_length=1, max_length=64)
    name: str | None = Field(default=None, min_length=1, max_length=255)
    price: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)


class StockAdjustmentCreate(BaseModel):
    delta: int
    reason: str | None = Field(default=None, max_length=255)


@router.get("", response_model=Page[ProductRead])
def list_products(
    sku: str | None = None,
    name: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
):
    page, limit = page_bounds(page, limit)
    rows, total_count = catalog.list_products(db, sku=sku, name=name, page=page, limit=limit)
    return Page[ProductRead].build(
        [ProductRead.model_validate(p) for p in rows],
        page=page,
        limit=limit,
        total_count=total_count,
    )


@router.get("/{product_id}", response_model=ProductRead)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return catalog.get_product(db, product_id)


@router.post("", response_model=ProductRead, status_code=201)
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    return catalog.create_product(
        db,
        sku=payload.sku,
        name=payload.name,
        price=payload.price,
        stock=payload.stock,
    )


@router.patch("/{product_id}", response_model=ProductRead)
def update_product(product_id: int, payload: ProductUpdate, db: Session = Depends(get_db)):
    return catalog.update_product(db, product_id, payload.model_dump(exclude_none=True))


@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: int, db: Session = Depends(get_db)):
    catalog.delete_product(db, product_id)
    return Response(status_code=204)


@router.post("/{product_id}/stock-adjustments", response_model=ProductRead)
def adjust_stock(product_id: int, payload: StockAdjustmentCreate, db: Session = Depends(get_db)):
    return retry_on_conflict(
        lambda: catalog.adjust_product_stock(db, product_id, payload.delta, reason=payload.reason)
    )
