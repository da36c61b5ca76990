# app/main.py
from contextlib import asynccontextmanager
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Request

from app.api.errors import register_error_handlers
from app.api.routers import carts, coupons, health, orders, users
from app.data.database import init_db
from app.utils.logging import add_context, clear_context, configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Initializing database")
    init_db()
    yield


def create_app(with_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="Storefront Service",
        version="1.0.0",
        lifespan=lifespan if with_lifespan else None,
    )

    register_error_handlers(app)

    @app.middleware("http")
    async def bind_request_context(request: Request, call_next):
        # every log line of a request carries its id
        clear_context()
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        add_context(request_id=request_id, path=request.url.path)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(coupons.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
