"""
Transaction scope for the order/stock core.

Every operation that touches stock runs inside ``atomic(db)``: commit when the
block completes, roll back everything on the first exception. Storage-level
concurrency failures come out as ``TransactionConflict``, the only error that
``retry_on_conflict`` will re-run.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from backend.app.core.config import settings
from backend.services.errors import TransactionConflict

logger = logging.getLogger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected, lock_not_available
PG_RETRY_SQLSTATES = {"40001", "40P01", "55P03"}


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_retryable(exc: DBAPIError) -> bool:
    if _sqlstate(exc) in PG_RETRY_SQLSTATES:
        return True
    msg = str(exc.orig).lower()
    return any(k in msg for k in ("deadlock detected", "could not serialize access", "database is locked"))


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    try:
        yield db
        db.commit()
    except DBAPIError as exc:
        db.rollback()
        if is_retryable(exc):
            raise TransactionConflict(str(exc.orig)) from exc
        raise
    except BaseException:
        db.rollback()
        raise


def retry_on_conflict(
    fn: Callable[[], T],
    *,
    max_attempts: int | None = None,
    backoff: float | None = None,
) -> T:
    """Run ``fn`` again while it fails with ``TransactionConflict``."""
    max_attempts = max_attempts or settings.order_tx_max_attempts
    backoff = settings.order_tx_backoff_seconds if backoff is None else backoff

    attempt = 0
    while True:
        attempt += 1
        try:
            return fn()
        except TransactionConflict as exc:
            if attempt >= max_attempts:
                exc.attempts = attempt
                exc.payload = {"attempts": attempt}
                raise
            logger.warning("transaction conflict (attempt %s/%s): %s", attempt, max_attempts, exc.message)
            time.sleep(backoff * attempt)
