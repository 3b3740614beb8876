from types import SimpleNamespace

import pytest

from backend.app.db.models.models_v1 import Product
from backend.services import ledger, stock
from backend.services.errors import (
    DataIntegrityFault,
    InsufficientStock,
    ProductNotFound,
)
from backend.services.transactions import atomic


def line(product_id, qty):
    return SimpleNamespace(product_id=product_id, qty=qty)


# ---------- Product ledger ----------
def test_adjust_stock_deducts_and_restocks(db_session, product):
    with atomic(db_session):
        ledger.adjust_stock(db_session, product.id, -4)
    assert db_session.get(Product, product.id).stock == 6

    with atomic(db_session):
        ledger.adjust_stock(db_session, product.id, 3)
    assert db_session.get(Product, product.id).stock == 9


def test_adjust_stock_can_reach_zero(db_session, product):
    with atomic(db_session):
        p = ledger.adjust_stock(db_session, product.id, -10)
    assert p.stock == 0


def test_adjust_stock_refuses_to_go_negative(db_session, product):
    with pytest.raises(InsufficientStock) as exc_info:
        with atomic(db_session):
            ledger.adjust_stock(db_session, product.id, -11)

    err = exc_info.value
    assert err.status_code == 409
    assert err.payload["product_id"] == product.id
    assert err.payload["available"] == 10
    assert err.payload["requested"] == 11
    assert db_session.get(Product, product.id).stock == 10


def test_adjust_stock_unknown_product(db_session):
    with pytest.raises(ProductNotFound) as exc_info:
        with atomic(db_session):
            ledger.adjust_stock(db_session, 987654321, -1)
    assert exc_info.value.payload["product_id"] == 987654321


def test_adjust_stock_zero_delta_is_a_read(db_session, product):
    with atomic(db_session):
        p = ledger.adjust_stock(db_session, product.id, 0)
    assert p.stock == 10


def test_lock_products_skips_missing_ids(db_session, make_product):
    a = make_product(stock=1)
    b = make_product(stock=2)

    with atomic(db_session):
        locked = ledger.lock_products(db_session, [b.id, 987654321, a.id, a.id, None])

    assert set(locked) == {a.id, b.id}
    assert locked[b.id].stock == 2


# ---------- Stock adjustment protocol ----------
def test_deduct_is_all_or_nothing(db_session, make_product):
    plenty = make_product(stock=10)
    scarce = make_product(stock=1)

    with pytest.raises(InsufficientStock) as exc_info:
        with atomic(db_session):
            stock.deduct(db_session, [line(plenty.id, 5), line(scarce.id, 2)])

    assert exc_info.value.payload["product_id"] == scarce.id
    assert db_session.get(Product, plenty.id).stock == 10
    assert db_session.get(Product, scarce.id).stock == 1


def test_deduct_sums_repeated_products(db_session, make_product):
    p = make_product(stock=5)

    with pytest.raises(InsufficientStock) as exc_info:
        with atomic(db_session):
            stock.deduct(db_session, [line(p.id, 3), line(p.id, 3)])

    assert exc_info.value.payload["requested"] == 6
    assert exc_info.value.payload["available"] == 5
    assert db_session.get(Product, p.id).stock == 5


def test_deduct_missing_product_rolls_back_earlier_lines(db_session, product):
    with pytest.raises(ProductNotFound):
        with atomic(db_session):
            # ids are applied in ascending order, the real product goes first
            stock.deduct(db_session, [line(product.id, 2), line(987654321, 1)])

    assert db_session.get(Product, product.id).stock == 10


def test_restock_missing_product_is_a_data_integrity_fault(db_session, product):
    with pytest.raises(DataIntegrityFault) as exc_info:
        with atomic(db_session):
            stock.restock(db_session, [line(product.id, 4), line(987654321, 1)], order_id=42)

    err = exc_info.value
    assert isinstance(err, ProductNotFound)
    assert err.status_code == 500
    assert err.payload == {"product_id": 987654321, "order_id": 42}
    # the partial restock of the first line was not committed
    assert db_session.get(Product, product.id).stock == 10
