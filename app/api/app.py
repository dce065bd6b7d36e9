# app/api/app.py
"""
FastAPI приложение: клиентский API + админка.

create_app(storage) собирает приложение. storage (Redis / память)
кладется в app.state - тесты передают свой MemoryStorage.
"""

from contextlib import asynccontextmanager

from aiogram.fsm.storage.base import BaseStorage
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.middlewares import RequestLoggingMiddleware
from app.api.routes import routers
from app.bot.notifications import close_bot
from app.errors import OrderingError
from config.settings import config
from infrastructure.database.base import close_db, init_db
from infrastructure.redis_storage import redis_storage

import structlog

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("api_startup")
    await init_db()

    try:
        yield
    finally:
        logger.info("api_shutdown")
        await close_bot()
        await close_db()


# ==========================================
# ОБРАБОТЧИКИ ОШИБОК
# ==========================================

async def ordering_error_handler(request: Request, exc: OrderingError):
    """OrderingError → {"error": "<заголовок>", "details": "..."}"""
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.title, details=exc.details)
    else:
        logger.warning("request_rejected", path=request.url.path, error=exc.title)

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Ошибка типов в теле / параметрах: 400 вместо 422."""
    logger.warning("request_invalid", path=request.url.path)
    return JSONResponse(
        status_code=400,
        content={"error": "שגיאת קלט", "details": jsonable_encoder(exc.errors())},
    )


# ==========================================
# СБОРКА
# ==========================================

def create_app(storage: BaseStorage = None) -> FastAPI:
    app = FastAPI(
        title="Gas Mineral Orders API",
        description="הזמנת בלוני גז - API ללקוחות ולניהול",
        version="1.0.0",
        lifespan=lifespan
    )

    app.state.storage = storage or redis_storage

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(OrderingError, ordering_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "service": "gas_mineral"}

    for router in routers:
        app.include_router(router)

    return app
