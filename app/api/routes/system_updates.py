# app/api/routes/system_updates.py
"""Объявления для главной страницы."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.serializers import system_update_to_dict
from app.services.delivery_days import local_today
from app.services.system_updates import SystemUpdateService
from infrastructure.database.base import get_db_session

router = APIRouter(prefix="/api/system-updates", tags=["system-updates"])


@router.get("")
async def active_updates(session: AsyncSession = Depends(get_db_session)):
    updates = await SystemUpdateService(session).list_active(local_today())
    return [system_update_to_dict(u) for u in updates]
