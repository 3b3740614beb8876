from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health")


@router.get("")
def health(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError as exc:
        logger.warning("health check: database unreachable: %s", exc)
        database = "disconnected"
    finally:
        db.rollback()
    return {"status": "ok", "database": database}
