"""
Product and supplier persistence.

Plain CRUD around the order core. Product stock is never written here except
through ``adjust_product_stock``, which goes through the ledger.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import Order, OrderItem, Product, Supplier
from backend.app.schemas.pagination import page_bounds
from backend.services import ledger
from backend.services.errors import (
    DuplicateError,
    InUseError,
    ProductNotFound,
    SupplierNotFound,
)
from backend.services.transactions import atomic

logger = logging.getLogger(__name__)


def _paginate(db: Session, stmt, order_by, page: int, limit: int) -> tuple[list, int]:
    total_count = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    rows = db.execute(stmt.order_by(*order_by).offset((page - 1) * limit).limit(limit)).scalars().all()
    return list(rows), int(total_count)


# ---------- PRODUCTS ----------
def get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise ProductNotFound(product_id)
    return product


def list_products(
    db: Session,
    *,
    sku: str | None = None,
    name: str | None = None,
    page: int = 1,
    limit: int | None = None,
) -> tuple[list[Product], int]:
    page, limit = page_bounds(page, limit)
    stmt = select(Product)
    if sku:
        stmt = stmt.where(Product.sku == sku)
    if name:
        stmt = stmt.where(Product.name.ilike(f"%{name}%"))
    return _paginate(db, stmt, (Product.sku.asc(),), page, limit)


def create_product(db: Session, *, sku: str, name: str, price: Decimal, stock: int = 0) -> Product:
    exists = db.execute(select(Product).where(Product.sku == sku)).scalar_one_or_none()
    if exists:
        raise DuplicateError("sku", sku, message=f"Product with SKU {sku} already exists.")

    p = Product(sku=sku, name=name, price=price, stock=stock)
    try:
        with atomic(db):
            db.add(p)
            db.flush()
    except IntegrityError as exc:
        raise DuplicateError("sku", sku, message=f"Product with SKU {sku} already exists.") from exc

    logger.info("product %s created (sku=%s stock=%s)", p.id, p.sku, p.stock)
    return p


def update_product(db: Session, product_id: int, changes: dict) -> Product:
    # stock is not an updatable field, see adjust_product_stock
    changes = {k: v for k, v in changes.items() if k in {"sku", "name", "price"}}
    try:
        with atomic(db):
            product = get_product(db, product_id)
            if "sku" in changes and changes["sku"] != product.sku:
                clash = db.execute(select(Product).where(Product.sku == changes["sku"])).scalar_one_or_none()
                if clash:
                    raise DuplicateError("sku", changes["sku"])
            for key, value in changes.items():
                setattr(product, key, value)
            db.flush()
    except IntegrityError as exc:
        raise DuplicateError("sku", changes.get("sku")) from exc
    return product


def delete_product(db: Session, product_id: int) -> None:
    with atomic(db):
        product = get_product(db, product_id)
        referenced = db.execute(
            select(func.count()).select_from(OrderItem).where(OrderItem.product_id == product_id)
        ).scalar_one()
        if referenced:
            raise InUseError(
                f"Product {product_id} is referenced by {referenced} order item(s).",
                payload={"product_id": product_id},
            )
        db.delete(product)

    logger.info("product %s deleted", product_id)


def adjust_product_stock(db: Session, product_id: int, delta: int, reason: str | None = None) -> Product:
    with atomic(db):
        product = ledger.adjust_stock(db, product_id, delta)

    logger.info("product %s stock adjusted by %+d (%s) -> %s", product_id, delta, reason or "manual", product.stock)
    return product


# ---------- SUPPLIERS ----------
def get_supplier(db: Session, supplier_id: int) -> Supplier:
    supplier = db.get(Supplier, supplier_id)
    if not supplier:
        raise SupplierNotFound(supplier_id)
    return supplier


def list_suppliers(
    db: Session,
    *,
    name: str | None = None,
    page: int = 1,
    limit: int | None = None,
) -> tuple[list[Supplier], int]:
    page, limit = page_bounds(page, limit)
    stmt = select(Supplier)
    if name:
        stmt = stmt.where(Supplier.name.ilike(f"%{name}%"))
    return _paginate(db, stmt, (Supplier.name.asc(),), page, limit)


def create_supplier(db: Session, *, name: str, contact: str) -> Supplier:
    exists = db.execute(select(Supplier).where(Supplier.name == name)).scalar_one_or_none()
    if exists:
        raise DuplicateError("name", name, message=f"Supplier with name '{name}' already exists.")

    s = Supplier(name=name, contact=contact)
    try:
        with atomic(db):
            db.add(s)
            db.flush()
    except IntegrityError as exc:
        raise DuplicateError("name", name, message=f"Supplier with name '{name}' already exists.") from exc
    return s


def update_supplier(db: Session, supplier_id: int, changes: dict) -> Supplier:
    changes = {k: v for k, v in changes.items() if k in {"name", "contact"}}
    try:
        with atomic(db):
            supplier = get_supplier(db, supplier_id)
            if "name" in changes and changes["name"] != supplier.name:
                clash = db.execute(select(Supplier).where(Supplier.name == changes["name"])).scalar_one_or_none()
                if clash:
                    raise DuplicateError("name", changes["name"])
            for key, value in changes.items():
                setattr(supplier, key, value)
            db.flush()
    except IntegrityError as exc:
        raise DuplicateError("name", changes.get("name")) from exc
    return supplier


def delete_supplier(db: Session, supplier_id: int) -> None:
    with atomic(db):
        supplier = get_supplier(db, supplier_id)
        referenced = db.execute(
            select(func.count()).select_from(Order).where(Order.supplier_id == supplier_id)
        ).scalar_one()
        if referenced:
            raise InUseError(
                f"Supplier {supplier_id} is referenced by {referenced} order(s).",
                payload={"supplier_id": supplier_id},
            )
        db.delete(supplier)
