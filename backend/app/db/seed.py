from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.core.logging import configure_logging
from backend.app.db.session import SessionLocal
from backend.app.db.models.models_v1 import Product, Supplier

logger = logging.getLogger(__name__)

DEMO_SUPPLIER = {"name": "Pacific Wholesale", "contact": "orders@pacific-wholesale.test"}
DEMO_PRODUCTS = [
    {"sku": "RICE-5KG", "name": "Jasmine rice 5kg", "price": Decimal("12.50"), "stock": 120},
    {"sku": "FLOUR-1KG", "name": "Wheat flour 1kg", "price": Decimal("2.90"), "stock": 80},
    {"sku": "OIL-1L", "name": "Sunflower oil 1L", "price": Decimal("4.20"), "stock": 40},
]


def run_seed(db: Session | None = None) -> None:
    own_session = db is None
    db = db or SessionLocal()
    try:
        supplier = db.scalar(select(Supplier).where(Supplier.name == DEMO_SUPPLIER["name"]))
        if not supplier:
            db.add(Supplier(**DEMO_SUPPLIER))

        for data in DEMO_PRODUCTS:
            if not db.scalar(select(Product).where(Product.sku == data["sku"])):
                db.add(Product(**data))

        db.commit()
        logger.info("seed ok: supplier=%s, %s products", DEMO_SUPPLIER["name"], len(DEMO_PRODUCTS))
    finally:
        if own_session:
            db.close()


if __name__ == "__main__":
    configure_logging()
    run_seed()
