# app/services/drafts.py
"""
📝 ЧЕРНОВИК КОРЗИНЫ

Клиент выбрал товары и закрыл страницу - при следующем заходе корзина на месте.
Хранится по id клиента. DRAFT_TTL_SECONDS=0 → черновик не истекает.
"""

from datetime import datetime, timedelta

from aiogram.fsm.storage.base import BaseStorage

from app.ordering import OrderSelection
from config.settings import config
from infrastructure.database.models import utcnow
from infrastructure.redis_storage import make_key, store_data

DRAFT_DESTINY = "draft"


class DraftStore:

    def __init__(self, storage: BaseStorage, ttl_seconds: int = None):
        self.storage = storage
        self.ttl_seconds = config.draft_ttl_seconds if ttl_seconds is None else ttl_seconds

    async def load(self, customer_id: int) -> OrderSelection:
        data = await self.storage.get_data(make_key(DRAFT_DESTINY, customer_id))
        if not data:
            return OrderSelection()

        if self.ttl_seconds and data.get("saved_at"):
            saved_at = datetime.fromisoformat(data["saved_at"])
            if utcnow() - saved_at > timedelta(seconds=self.ttl_seconds):
                await self.clear(customer_id)
                return OrderSelection()

        return OrderSelection.from_dict(data.get("selection"))

    async def save(self, customer_id: int, selection: OrderSelection):
        """Пустая корзина = удалить черновик."""
        if selection.is_empty:
            await self.clear(customer_id)
            return

        await store_data(
            self.storage,
            make_key(DRAFT_DESTINY, customer_id),
            {"selection": selection.to_dict(), "saved_at": utcnow().isoformat()},
            ttl=self.ttl_seconds or None,
        )

    async def clear(self, customer_id: int):
        await self.storage.set_data(make_key(DRAFT_DESTINY, customer_id), {})
