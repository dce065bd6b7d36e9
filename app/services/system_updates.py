# app/services/system_updates.py
"""
📢 ОБЪЯВЛЕНИЯ

Админ пишет, клиенты видят на главной.
Видны только активные и не просроченные.
"""

from datetime import date
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import LookupFailure, RemoteCallFailure, ValidationError
from infrastructure.database.models import SystemUpdate, utcnow
from infrastructure.database.repositories import SystemUpdateRepository

import structlog

logger = structlog.get_logger()

EDITABLE_FIELDS = ("title", "content", "is_active", "expiry_date")


class SystemUpdateService:

    def __init__(self, session: AsyncSession):
        self.session = session
        self.updates = SystemUpdateRepository(session)

    async def _commit(self, event: str):
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(event, error=str(e))
            raise RemoteCallFailure(str(e), title="שגיאה בשמירת העדכון")

    async def list_active(self, today: date) -> List[SystemUpdate]:
        return await self.updates.list_active(today)

    async def list_all(self) -> List[SystemUpdate]:
        return await self.updates.list_all()

    async def create(self, data: dict) -> SystemUpdate:
        if not data.get("title") or not data.get("content"):
            raise ValidationError("כותרת ותוכן נדרשים", title="חסרים פרטים נדרשים")

        fields = {k: v for k, v in data.items() if k in EDITABLE_FIELDS and v is not None}
        update = await self.updates.create(**fields)
        await self._commit("system_update_create_error")

        logger.info("system_update_created", update_id=update.id)
        return update

    async def update(self, update_id: str, data: dict) -> SystemUpdate:
        update = await self.updates.get_by_id(update_id)
        if not update:
            raise LookupFailure(f"system update {update_id}", title="העדכון לא נמצא")

        for key, value in data.items():
            if key in EDITABLE_FIELDS:
                setattr(update, key, value)
        update.updated_at = utcnow()
        await self._commit("system_update_save_error")

        logger.info("system_update_saved", update_id=update_id)
        return update

    async def delete(self, update_id: str):
        update = await self.updates.get_by_id(update_id)
        if not update:
            raise LookupFailure(f"system update {update_id}", title="העדכון לא נמצא")

        await self.updates.delete(update)
        await self._commit("system_update_delete_error")
        logger.info("system_update_deleted", update_id=update_id)
