import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.app.api.v1.router import router as v1_router
from backend.app.core.logging import configure_logging
from backend.services.errors import OrderCoreError

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Inventory Orders", version="0.1.0")
    app.include_router(v1_router, prefix="/v1")

    @app.exception_handler(OrderCoreError)
    async def handle_order_core_error(request: Request, exc: OrderCoreError):
        if exc.status_code >= 500:
            logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
        else:
            logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    return app


app = create_app()
