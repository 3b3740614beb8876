from fastapi import APIRouter

from backend.app.api.v1.endpoints.health import router as health_router
from backend.app.api.v1.endpoints.products import router as products_router
from backend.app.api.v1.endpoints.suppliers import router as suppliers_router
from backend.app.api.v1.endpoints.orders import router as orders_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(products_router, tags=["products"])
router.include_router(suppliers_router, tags=["suppliers"])
router.include_router(orders_router, tags=["orders"])
