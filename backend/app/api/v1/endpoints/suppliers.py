from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.schemas.catalog import SupplierRead
from backend.app.schemas.pagination import Page, page_bounds
from backend.services import catalog

router = APIRouter(prefix="/suppliers")


class SupplierCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    contact: str = Field(min_length=1, max_length=255)


class SupplierUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    contact: str | None = Field(default=None, min_length=1, max_length=255)


@router.get("", response_model=Page[SupplierRead])
def list_suppliers(
    name: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
):
    page, limit = page_bounds(page, limit)
    rows, total_count = catalog.list_suppliers(db, name=name, page=page, limit=limit)
    return Page[SupplierRead].build(
        [SupplierRead.model_validate(s) for s in rows],
        page=page,
        limit=limit,
        total_count=total_count,
    )


@router.get("/{supplier_id}", response_model=SupplierRead)
def get_supplier(supplier_id: int, db: Session = Depends(get_db)):
    return catalog.get_supplier(db, supplier_id)


@router.post("", response_model=SupplierRead, status_code=201)
def create_supplier(payload: SupplierCreate, db: Session = Depends(get_db)):
    return catalog.create_supplier(db, name=payload.name.strip(), contact=payload.contact)


@router.patch("/{supplier_id}", response_model=SupplierRead)
def update_supplier(supplier_id: int, payload: SupplierUpdate, db: Session = Depends(get_db)):
    return catalog.update_supplier(db, supplier_id, payload.model_dump(exclude_none=True))


@router.delete("/{supplier_id}", status_code=204)
def delete_supplier(supplier_id: int, db: Session = Depends(get_db)):
    catalog.delete_supplier(db, supplier_id)
    return Response(status_code=204)
