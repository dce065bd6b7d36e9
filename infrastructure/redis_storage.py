# infrastructure/redis_storage.py
"""
🔴 REDIS STORAGE

Здесь живут данные, которые не нужны в БД навсегда:
- сессии (кто залогинен, до какого времени)
- черновики корзины (что клиент уже выбрал, но еще не отправил)
- счетчики отправленных кодов подтверждения

Используем хранилища aiogram (тот же интерфейс get_data / set_data):
- REDIS_URL задан → RedisStorage (данные переживают перезапуск)
- REDIS_URL пустой → ExpiringMemoryStorage (локальная разработка и тесты)

У каждого ключа свой срок жизни (store_data(..., ttl=...)):
сессия живет до expires_at, счетчик кодов - одно окно лимита.
Пустые данные = ключ удаляется.
"""

import time
from typing import Any, Dict, Mapping, Optional

from aiogram.fsm.storage.base import BaseStorage, StorageKey
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.fsm.storage.redis import DefaultKeyBuilder, RedisStorage
from redis.asyncio.client import Redis

from config.settings import config

import structlog

logger = structlog.get_logger()


# ==========================================
# ПАМЯТЬ СО СРОКОМ ЖИЗНИ КЛЮЧЕЙ
# ==========================================

class ExpiringMemoryStorage(MemoryStorage):
    """
    MemoryStorage, который умеет забывать ключи (как EXPIRE в Redis).

    - expire(key, seconds) → ключ исчезнет через seconds
    - новая запись сбрасывает срок (как SET в Redis)
    - пустые данные → запись удаляется, а не копится
    """

    def __init__(self):
        super().__init__()
        self._deadlines: Dict[StorageKey, float] = {}
        self.clock = time.monotonic

    def expire(self, key: StorageKey, seconds: int):
        self._deadlines[key] = self.clock() + seconds

    def purge_expired(self) -> int:
        now = self.clock()
        expired = [key for key, deadline in self._deadlines.items() if deadline <= now]
        for key in expired:
            self._deadlines.pop(key, None)
            self.storage.pop(key, None)
        return len(expired)

    def __len__(self) -> int:
        return len(self.storage)

    async def set_data(self, key: StorageKey, data: Mapping[str, Any]) -> None:
        self.purge_expired()
        self._deadlines.pop(key, None)

        if not data:
            self.storage.pop(key, None)
            return
        await super().set_data(key, data)

    async def get_data(self, key: StorageKey) -> Dict[str, Any]:
        self.purge_expired()
        # storage - defaultdict, чтение несуществующего ключа его создало бы
        if key not in self.storage:
            return {}
        return await super().get_data(key)


# ==========================================
# SETUP STORAGE
# ==========================================

def create_storage(redis_url: Optional[str] = None) -> BaseStorage:
    """
    Создать хранилище по настройкам.

    with_destiny=True - ключ включает "назначение" (session / draft / throttle),
    поэтому разные виды данных одного клиента не пересекаются.
    """
    redis_url = config.redis_url if redis_url is None else redis_url

    if not redis_url:
        logger.info("storage_selected", backend="memory")
        return ExpiringMemoryStorage()

    redis = Redis.from_url(redis_url)
    logger.info("storage_selected", backend="redis")
    return RedisStorage(
        redis=redis,
        key_builder=DefaultKeyBuilder(prefix="gasorder", with_destiny=True),
    )


redis_storage = create_storage()


def make_key(destiny: str, ident) -> StorageKey:
    """
    Ключ хранилища для наших данных.

    destiny = вид данных ("session", "draft", "throttle"),
    ident   = токен сессии, id клиента или телефон.
    """
    return StorageKey(bot_id=0, chat_id=0, user_id=ident, destiny=destiny)


# ==========================================
# ЗАПИСЬ СО СРОКОМ ЖИЗНИ
# ==========================================

async def store_data(
    storage: BaseStorage,
    key: StorageKey,
    data: Mapping[str, Any],
    ttl: Optional[int] = None
):
    """
    Записать данные ключа.

    ttl (секунды) → ключ сам удалится (Redis EXPIRE / ExpiringMemoryStorage).
    ttl=None → живет пока не перезапишут.
    """
    await storage.set_data(key, data)

    if not data or not ttl:
        return

    seconds = max(1, int(ttl))
    if isinstance(storage, RedisStorage):
        await storage.redis.expire(storage.key_builder.build(key, "data"), seconds)
    elif isinstance(storage, ExpiringMemoryStorage):
        storage.expire(key, seconds)


# ==========================================
# ФУНКЦИЯ: проверить соединение
# ==========================================

async def check_redis_connection(storage: BaseStorage = None) -> bool:
    """
    Проверяет что Redis живой и отвечает.
    Для хранилища в памяти всегда True.
    """
    storage = storage or redis_storage

    if not isinstance(storage, RedisStorage):
        return True

    try:
        await storage.redis.ping()
        return True
    except Exception as e:
        logger.error("redis_connection_error", error=str(e))
        return False


__all__ = [
    "ExpiringMemoryStorage",
    "create_storage",
    "redis_storage",
    "make_key",
    "store_data",
    "check_redis_connection",
]
