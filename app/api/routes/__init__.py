# app/api/routes/__init__.py
"""Все роутеры API."""

from .admin import router as admin_router
from .auth import router as auth_router
from .cart import router as cart_router
from .catalog import router as catalog_router
from .delivery import router as delivery_router
from .functions import router as functions_router
from .orders import router as orders_router
from .service_requests import router as service_requests_router
from .system_updates import router as system_updates_router

routers = [
    functions_router,
    auth_router,
    catalog_router,
    cart_router,
    orders_router,
    delivery_router,
    system_updates_router,
    service_requests_router,
    admin_router,
]

__all__ = ["routers"]
