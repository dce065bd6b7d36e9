# app/services/throttling.py
"""
Защита от спама кодами подтверждения.

Не больше N кодов на один телефон за окно времени.
Время каждого запроса хранится в storage (Redis или память),
старые отметки выкидываются при каждой проверке.
"""

from datetime import datetime, timedelta

from aiogram.fsm.storage.base import BaseStorage

from config.settings import config
from infrastructure.database.models import utcnow
from infrastructure.redis_storage import make_key, store_data

import structlog

logger = structlog.get_logger()

THROTTLE_DESTINY = "throttle"


class SendThrottle:

    def __init__(self, storage: BaseStorage, max_requests: int = None, time_window: int = None):
        self.storage = storage
        # По умолчанию: максимум 3 кода за 10 минут
        self.max_requests = max_requests or config.verification_send_limit
        self.time_window = time_window or config.verification_send_window

    async def hit(self, phone: str) -> bool:
        """
        Засчитать запрос. False если лимит уже исчерпан (запрос не засчитан).
        """
        key = make_key(THROTTLE_DESTINY, phone)
        now = utcnow()
        window = timedelta(seconds=self.time_window)

        data = await self.storage.get_data(key)
        requests = [
            stamp for stamp in data.get("requests", [])
            if now - datetime.fromisoformat(stamp) < window
        ]

        if len(requests) >= self.max_requests:
            logger.warning("throttling_limit_exceeded", phone=phone)
            return False

        requests.append(now.isoformat())
        # ключ живет одно окно с последнего запроса
        await store_data(self.storage, key, {"requests": requests}, ttl=self.time_window)
        return True
