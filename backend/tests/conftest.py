import os
import tempfile
import uuid
from decimal import Decimal

import pytest

# The app builds its engine at import time: point it at a throwaway database
# before anything from backend.* is imported.
_TEST_DB_DIR = tempfile.mkdtemp(prefix="inventory-tests-")
os.environ["DATABASE_URL"] = os.getenv(
    "TEST_DATABASE_URL",
    f"sqlite:///{os.path.join(_TEST_DB_DIR, 'test.db')}",
)

from sqlalchemy import delete, select  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from backend.app.db.base import Base  # noqa: E402
from backend.app.db.models.models_v1 import Order, Product, Supplier  # noqa: E402
from backend.app.db.session import SessionLocal, engine  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    engine.dispose()


@pytest.fixture(scope="function")
def db_session() -> Session:
    """
    Isolated DB session per test.

    Runs inside an outer transaction; the session itself works in SAVEPOINTs,
    so commit()/rollback() behave normally and EVERYTHING is rolled back when
    the test ends.
    """
    connection = engine.connect()
    transaction = connection.begin()

    session = SessionLocal(bind=connection, join_transaction_mode="create_savepoint")

    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


def _suffix() -> str:
    return uuid.uuid4().hex[:8]


@pytest.fixture
def make_supplier(db_session):
    def _make(name=None, contact="buyer@supplier.test"):
        s = Supplier(name=name or f"TEST-SUP-{_suffix()}", contact=contact)
        db_session.add(s)
        db_session.commit()
        return s

    return _make


@pytest.fixture
def make_product(db_session):
    def _make(stock=10, price="2.50", sku=None, name=None):
        suffix = _suffix()
        p = Product(
            sku=sku or f"TEST-SKU-{suffix}",
            name=name or f"TEST-PROD-{suffix}",
            price=Decimal(price),
            stock=stock,
        )
        db_session.add(p)
        db_session.commit()
        return p

    return _make


@pytest.fixture
def supplier(make_supplier):
    return make_supplier()


@pytest.fixture
def product(make_product):
    return make_product(stock=10, price="2.50")


@pytest.fixture
def committed_catalog():
    """
    Supplier + product committed for real, for tests that run several
    sessions/threads at once. Removed again afterwards.
    """
    db = SessionLocal()
    suffix = _suffix()
    supplier = Supplier(name=f"CONC-SUP-{suffix}", contact="conc@supplier.test")
    product = Product(sku=f"CONC-SKU-{suffix}", name=f"CONC-PROD-{suffix}", price=Decimal("5.00"), stock=10)
    db.add_all([supplier, product])
    db.commit()
    supplier_id, product_id = supplier.id, product.id
    db.close()

    yield supplier_id, product_id

    db = SessionLocal()
    try:
        order_ids = db.execute(select(Order.id).where(Order.supplier_id == supplier_id)).scalars().all()
        for order in db.execute(select(Order).where(Order.id.in_(order_ids))).scalars().all():
            db.delete(order)
        db.flush()
        db.execute(delete(Product).where(Product.id == product_id))
        db.execute(delete(Supplier).where(Supplier.id == supplier_id))
        db.commit()
    finally:
        db.close()


@pytest.fixture
def read_stock():
    """Read a product's committed stock through a fresh session."""

    def _read(product_id: int) -> int:
        db = SessionLocal()
        try:
            return db.execute(select(Product.stock).where(Product.id == product_id)).scalar_one()
        finally:
            db.close()

    return _read
