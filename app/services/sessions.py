# app/services/sessions.py
"""
🔑 СЕССИИ

Вместо "user" в localStorage браузера - явный объект сессии на сервере:
- open  → после подтверждения телефона (или входа админа)
- load  → на каждом запросе по токену из заголовка
- close → выход

Ключ сессии живет ровно до expires_at (TTL в хранилище).
Просроченная, но еще не удаленная сессия удаляется при загрузке.
"""

import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from aiogram.fsm.storage.base import BaseStorage

from config.settings import config
from infrastructure.database.models import CustomerRole, utcnow
from infrastructure.redis_storage import make_key, store_data

import structlog

logger = structlog.get_logger()

SESSION_DESTINY = "session"


def check_admin_password(password: Optional[str]) -> bool:
    """
    Пароль админа из настроек. Пустой ADMIN_PASSWORD = вход закрыт.
    """
    if not config.admin_password or not password:
        return False
    return hmac.compare_digest(password.encode(), config.admin_password.encode())


@dataclass(frozen=True)
class AuthSession:
    token: str
    customer_id: Optional[int]
    user_id: Optional[str]
    role: CustomerRole
    expires_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == CustomerRole.ADMIN

    def is_expired(self, now: datetime = None) -> bool:
        return (now or utcnow()) >= self.expires_at

    def to_dict(self) -> dict:
        return {
            "token": self.token,
            "customer_id": self.customer_id,
            "user_id": self.user_id,
            "role": self.role.value,
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AuthSession":
        return cls(
            token=data["token"],
            customer_id=data.get("customer_id"),
            user_id=data.get("user_id"),
            role=CustomerRole(data.get("role", CustomerRole.CUSTOMER.value)),
            expires_at=datetime.fromisoformat(data["expires_at"]),
        )


class SessionStore:
    """
    Хранилище сессий поверх aiogram storage (Redis или память).

    Пример:
        store = SessionStore(redis_storage)
        session = await store.open(customer_id=7)
        ...
        session = await store.load(session.token)   # None если истекла
        await store.close(session.token)
    """

    def __init__(self, storage: BaseStorage, ttl_seconds: int = None, admin_ttl_seconds: int = None):
        self.storage = storage
        self.ttl = timedelta(seconds=ttl_seconds or config.session_ttl_seconds)
        self.admin_ttl = timedelta(seconds=admin_ttl_seconds or config.admin_session_ttl_seconds)

    async def open(
        self,
        customer_id: Optional[int],
        user_id: Optional[str] = None,
        role: CustomerRole = CustomerRole.CUSTOMER,
    ) -> AuthSession:
        ttl = self.admin_ttl if role == CustomerRole.ADMIN else self.ttl
        session = AuthSession(
            token=secrets.token_urlsafe(32),
            customer_id=customer_id,
            user_id=user_id,
            role=role,
            expires_at=utcnow() + ttl,
        )
        await store_data(
            self.storage,
            make_key(SESSION_DESTINY, session.token),
            session.to_dict(),
            ttl=int(ttl.total_seconds()),
        )

        logger.info("session_opened", customer_id=customer_id, role=role.value)
        return session

    async def open_admin(self) -> AuthSession:
        return await self.open(customer_id=None, role=CustomerRole.ADMIN)

    async def load(self, token: Optional[str]) -> Optional[AuthSession]:
        if not token:
            return None

        data = await self.storage.get_data(make_key(SESSION_DESTINY, token))
        if not data:
            return None

        session = AuthSession.from_dict(data)
        if session.is_expired():
            await self.close(token)
            logger.info("session_expired", customer_id=session.customer_id)
            return None

        return session

    async def close(self, token: str):
        await self.storage.set_data(make_key(SESSION_DESTINY, token), {})
        logger.info("session_closed")
