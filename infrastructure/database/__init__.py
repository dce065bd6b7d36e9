# infrastructure/database/__init__.py
"""
🗄️ БАЗА ДАННЫХ

Подключение (base), таблицы (models), доступ к данным (repositories).
"""

from infrastructure.database.base import (
    async_session_maker,
    close_db,
    engine,
    get_db_session,
    init_db,
)
from infrastructure.database.models import Base, OrderStatus
from infrastructure.database.repositories import (
    CustomerRepository,
    DeliveryDayRepository,
    OrderRepository,
    PriceListRepository,
    ProductRepository,
    ServiceRequestRepository,
    SystemUpdateRepository,
)

__all__ = [
    "Base",
    "OrderStatus",
    "engine",
    "async_session_maker",
    "get_db_session",
    "init_db",
    "close_db",
    "CustomerRepository",
    "DeliveryDayRepository",
    "OrderRepository",
    "PriceListRepository",
    "ProductRepository",
    "ServiceRequestRepository",
    "SystemUpdateRepository",
]
